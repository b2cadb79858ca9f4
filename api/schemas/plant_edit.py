"""
Pydantic schemas for the plant edit endpoint
"""
from pydantic import BaseModel, Field


class PlantEditRequest(BaseModel):
    """Room photo to add plants to"""

    image: str = Field(..., min_length=1, description="Data URI or raw base64 image")
    image_type: str = Field(..., alias="imageType", description="MIME type of the image, e.g. image/jpeg")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "image": "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ...",
                "imageType": "image/jpeg",
            }
        }


class PlantEditResponse(BaseModel):
    """Edited room photo"""

    image_url: str = Field(..., alias="imageUrl", description="data:image/png;base64,... payload")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Error body returned for every failed edit"""

    error: str
