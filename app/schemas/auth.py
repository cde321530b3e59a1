"""
app/schemas/auth.py

Purpose: Request bodies for registration, login and password flows
"""

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str
    confirm_password: str

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Ada Lovelace",
                "username": "ada",
                "email": "ada@mail.com",
                "password": "analytical",
                "confirm_password": "analytical"
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    password: str


class CreateAdminRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
