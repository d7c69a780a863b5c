from pydantic import BaseModel, Field, field_validator


class AccountBase(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    firstname: str | None = Field(default=None, max_length=255)
    lastname: str | None = Field(default=None, max_length=255)


class AccountCreate(AccountBase):
    pass


class AccountUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=100)
    firstname: str | None = Field(default=None, max_length=255)
    lastname: str | None = Field(default=None, max_length=255)

    @field_validator("username")
    @classmethod
    def _username_not_null(cls, value):
        if value is None:
            raise ValueError("username cannot be null")
        return value
