import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application Environment Config
    """
    env: str  # 'development', 'staging', 'production'
    supabase_url: str
    supabase_key: str
    site_url: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        site_url = (os.environ.get("SITE_URL") or "http://localhost:3000").strip().rstrip("/")

        return AppConfig(
            env=env,
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            site_url=site_url,
        )

# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class SMTPConfig:
    """
    SMTP 配置（从环境变量读取）

    中文注释:
    1) 该配置只存在于后端进程内，严禁泄露到前端。
    2) 允许在本地/测试环境缺省（此时邮件发送逻辑会优雅降级为“只记录日志”）。
    """

    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    from_email: str
    use_starttls: bool

    @staticmethod
    def from_env() -> Optional["SMTPConfig"]:
        host = (os.environ.get("SMTP_HOST") or "").strip()
        if not host:
            return None

        user = (os.environ.get("SMTP_USER") or "").strip() or None
        password = (os.environ.get("SMTP_PASSWORD") or "").strip() or None
        from_email = (
            os.environ.get("EMAIL_FROM") or user or "noreply@journal.example"
        ).strip()

        return SMTPConfig(
            host=host,
            port=_env_int("SMTP_PORT", 587),
            user=user,
            password=password,
            from_email=from_email,
            use_starttls=_env_bool("SMTP_USE_STARTTLS", True),
        )


@dataclass(frozen=True)
class ResendConfig:
    """
    Resend API Configuration (production email)
    """
    api_key: str
    sender: str

    @staticmethod
    def from_env() -> Optional["ResendConfig"]:
        api_key = (os.environ.get("RESEND_API_KEY") or "").strip()
        if not api_key:
            return None

        sender = (os.environ.get("EMAIL_FROM") or "noreply@journal.example").strip()
        return ResendConfig(api_key=api_key, sender=sender)


@dataclass(frozen=True)
class CrossrefConfig:
    """
    Crossref deposit endpoint config.

    中文注释:
    - 账号密码存放在 journal_settings（编辑可在后台修改），这里只保留与部署相关的端点/联系人。
    """

    api_url: str
    depositor_email: str

    @staticmethod
    def from_env() -> "CrossrefConfig":
        api_url = (
            os.environ.get("CROSSREF_API_URL")
            or "https://doi.crossref.org/servlet/deposit"
        ).strip()
        depositor_email = (
            os.environ.get("CROSSREF_DEPOSITOR_EMAIL") or "admin@journal.example"
        ).strip()
        return CrossrefConfig(api_url=api_url, depositor_email=depositor_email)


@dataclass(frozen=True)
class SentryConfig:
    dsn: str
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> Optional["SentryConfig"]:
        dsn = (os.environ.get("SENTRY_DSN") or "").strip()
        if not dsn:
            return None
        raw_rate = (os.environ.get("SENTRY_TRACES_SAMPLE_RATE") or "0").strip()
        try:
            rate = float(raw_rate)
        except ValueError:
            rate = 0.0
        return SentryConfig(
            dsn=dsn,
            environment=(os.environ.get("APP_ENV") or "development").strip().lower(),
            traces_sample_rate=min(max(rate, 0.0), 1.0),
        )


def get_cron_secret() -> Optional[str]:
    """
    定时任务（催审提醒）共享密钥

    中文注释:
    - 仅用于 `/api/v1/internal/cron/*`，不属于用户 JWT 体系。
    - 未配置时直接拒绝所有调用，避免误开放内部接口。
    """

    raw = os.environ.get("CRON_SECRET")
    return raw.strip() if raw and raw.strip() else None


def get_jwt_secret() -> str:
    return (os.environ.get("SUPABASE_JWT_SECRET") or "mock-secret-replace-later").strip()


def parse_frontend_origins() -> list[str]:
    """
    解析允许跨域的前端 Origins（FRONTEND_ORIGINS，逗号分隔；默认 localhost:3000）。
    """
    origins: list[str] = []
    many = (os.environ.get("FRONTEND_ORIGINS") or "").strip()
    for part in many.split(","):
        o = (part or "").strip().rstrip("/")
        if o and o not in origins:
            origins.append(o)
    return origins or ["http://localhost:3000"]
