# learnhub/schemas/email.py
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class WelcomeEmailRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)


class PurchaseEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    name: str = Field(..., min_length=1)
    course_title: str = Field(..., min_length=1, alias="courseTitle")
    amount: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("amount", "amountMinorUnits"),
        description="Amount in minor currency units",
    )


class EmailSentResponse(BaseModel):
    success: bool = True
