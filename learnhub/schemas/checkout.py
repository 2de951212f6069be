# learnhub/schemas/checkout.py
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutCourse(BaseModel):
    """
    Course summary sent by the storefront.

    Every field is optional here; missing values are reported as a 400
    by the checkout service rather than as a schema error.
    """

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(None, description="Price in minor currency units")

    @field_validator("id", mode="before")
    @classmethod
    def convert_id_to_str(cls, value: Union[str, int, None]):
        return None if value is None else str(value)


class CheckoutRequest(BaseModel):
    course: Optional[CheckoutCourse] = None


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., serialization_alias="sessionId")
    url: str


class CheckoutResultResponse(BaseModel):
    purchase_recorded: bool
    session_id: str
    course_id: str
    course_title: str
    amount_paid: Optional[int] = None
    purchase_date: datetime
