from pydantic import BaseModel, EmailStr


class AdminLogin(BaseModel):
    email: EmailStr
    password: str


class AdminOut(BaseModel):
    id: str
    name: str
    email: EmailStr
    role: str
    permissions: list[str] = []

    model_config = {"from_attributes": True}
