from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str
    first_name: str = ""
    last_name: str = ""
    telegram_id: int | None = None
    language_code: str = "en"
    chunk_size: int | None = Field(default=None, gt=0)


class User(BaseModel):
    id: str
    api_key: str
    username: str
    first_name: str
    last_name: str
    telegram_id: int | None
    language_code: str
    chunk_size: int
    documents_limit: int
    created_at: str

    @property
    def display_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name} ({self.username})"
        return self.username
