from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import datetime
from bson import ObjectId


class UserBase(BaseModel):
    """Base user schema."""
    name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[a-z0-9_]+$")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value):
        # Usernames are matched case-insensitively
        return value.strip().lower() if isinstance(value, str) else value


class UserCreate(UserBase):
    """User creation schema."""
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("password", mode="before")
    @classmethod
    def strip_password(cls, value):
        # Length rules apply to the trimmed password
        return value.strip() if isinstance(value, str) else value


class UserLogin(BaseModel):
    """Login credentials."""
    username: str
    password: str

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("password", mode="before")
    @classmethod
    def strip_password(cls, value):
        return value.strip() if isinstance(value, str) else value


class UserResponse(UserBase):
    """User response schema."""
    id: str = Field(validation_alias="_id", serialization_alias="id")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )


class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserInDB(BaseModel):
    """User database schema."""
    id: ObjectId = Field(alias="_id")
    name: str
    username: str
    password_hash: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True
    )

    def to_response(self) -> UserResponse:
        return UserResponse(
            id=str(self.id),
            name=self.name,
            username=self.username,
            created_at=self.created_at,
            updated_at=self.updated_at
        )
