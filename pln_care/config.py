from __future__ import annotations

import os
from pydantic_settings import BaseSettings
from pydantic import Field
from dotenv import load_dotenv


load_dotenv()


class Settings(BaseSettings):
    DB_URL: str = Field(default=os.getenv("DB_URL", "sqlite:///./pln_care.db"))
    JWT_SECRET: str = Field(default=os.getenv("JWT_SECRET", "change_me"))
    JWT_ALG: str = Field(default=os.getenv("JWT_ALG", "HS256"))
    # 7 days, same lifetime the dashboard frontend expects
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    )
    FRONTEND_URL: str = Field(default=os.getenv("FRONTEND_URL", "http://localhost:5173"))
    LOG_LEVEL: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))
    MAX_COMPLAINT_IMAGES: int = Field(default=int(os.getenv("MAX_COMPLAINT_IMAGES", "5")))

    class Config:
        case_sensitive = False


settings = Settings()
