from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    """
    应用程序配置设置类，从环境变量或.env文件加载所有配置项。
    使用Pydantic进行数据验证和类型检查。

    包含服务器配置、数据库连接、统计时区和日志级别等配置项。
    """
    # Server
    BACKEND_PORT: int = 8000

    # Model configuration tells Pydantic where to find the .env file.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    PROJECT_NAME: str = "Survey Response Service"
    API_V1_STR: str = "/api/v1"

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "https://survey-next-git-main-intermaritime.vercel.app",
        "https://surveys.intermaritime.org",
    ]

    # Database
    DATABASE_URL: str = "sqlite:///./survey.db"
    # 获取锁/连接的最长等待时间（秒），超时按瞬时故障处理
    DATABASE_TIMEOUT_SECONDS: float = 15.0
    # 启动时自动建表
    AUTO_CREATE_TABLES: bool = True

    # Analytics
    # 每日统计计数器按该时区划分自然日
    ANALYTICS_TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"

# Create a single, globally accessible instance of the settings.
settings = Settings()
