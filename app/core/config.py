"""
应用配置文件
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """应用配置"""

    # 应用基本配置
    APP_NAME: str = "Channel Press API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "channel_press"
    DB_URL: Optional[str] = None  # 完整连接串，设置后优先使用（测试环境用sqlite）
    AUTO_CREATE_TABLES: bool = False

    # JWT配置
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    SESSION_COOKIE_NAME: str = "session_token"

    # CORS配置
    CORS_ORIGINS: list = ["*"]

    # 业务限制
    MAX_CHANNELS_PER_USER: int = 10
    DUPLICATE_ARTICLE_WINDOW_HOURS: int = 24
    SLUG_MAX_ATTEMPTS: int = 10
    SLUG_MAX_LENGTH: int = 60
    MAX_BATCH_ARTICLES: int = 10
    MAX_ARTICLE_CATEGORIES: int = 3
    MAX_ARTICLE_IMAGES: int = 5

    # API Key配置
    API_KEY_PREFIX: str = "nk_"
    API_KEY_SECRET: str = "api-key-salt-change-in-production"  # HMAC盐值

    @property
    def DATABASE_URL(self) -> str:
        """获取数据库连接URL"""
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USERNAME}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
