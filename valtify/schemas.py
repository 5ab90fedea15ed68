from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from valtify.models import KNOWN_CATEGORIES

MAX_PASSWORD_LENGTH = 1024
MAX_DATA_LENGTH = 64 * 1024

CATEGORY_HELP = f"One of {', '.join(KNOWN_CATEGORIES)}, or any custom label"


# -------------------------
# Accounts
# -------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    # Minimum length is enforced by the register flow so it follows MIN_PASSWORD_LENGTH.
    password: str = Field(..., max_length=MAX_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class AccountOut(BaseModel):
    id: str
    email: str

    model_config = {"from_attributes": True}


class AccountDetail(AccountOut):
    created_at: datetime
    last_login: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: AccountOut
    token: str
    token_type: str = "bearer"


# -------------------------
# Vault items
# -------------------------

def _strip_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("title must not be blank")
    return value


class ItemCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=50, description=CATEGORY_HELP)
    title: str = Field(..., min_length=1, max_length=255)
    data: str = Field(..., min_length=1, max_length=MAX_DATA_LENGTH)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _strip_title(value)


class ItemUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=50, description=CATEGORY_HELP)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    data: Optional[str] = Field(None, min_length=1, max_length=MAX_DATA_LENGTH)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _strip_title(value)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.category is None and self.title is None and self.data is None:
            raise ValueError("provide at least one of category, title, data")
        return self


class ItemOut(BaseModel):
    id: str
    category: str
    title: str
    data: str
    created_at: datetime
    updated_at: datetime


class ItemEnvelope(BaseModel):
    item: ItemOut


class ItemList(BaseModel):
    items: List[ItemOut]


class Message(BaseModel):
    message: str
