"""설정 관리"""
import os
from dotenv import load_dotenv

load_dotenv()


def _split_emails(raw: str | None) -> list[str]:
    return [e.strip().lower() for e in (raw or "").split(",") if e.strip()]


class Config:
    # 실행 환경: "development" or "production"
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Supabase (service role: 권한 검사는 애플리케이션에서 수행)
    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    SUPABASE_TIMEOUT = int(os.getenv("SUPABASE_TIMEOUT", "10"))

    # JWT (Supabase Auth와 같은 HS256 공유 시크릿)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # 관리자 목록
    ADMIN_EMAILS = _split_emails(os.getenv("ADMIN_EMAILS"))
    DEV_ADMIN_EMAILS = _split_emails(os.getenv("DEV_ADMIN_EMAILS"))
    DEV_AUTH_ENABLED = os.getenv("DEV_AUTH_ENABLED", "false").lower() == "true"

    # 분류 체계 설정
    ORDER_RETRY_ATTEMPTS = int(os.getenv("ORDER_RETRY_ATTEMPTS", "5"))
    DELETE_POLICY = os.getenv("DELETE_POLICY", "reject")

    # CORS 설정
    ALLOWED_ORIGINS = os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:8000,http://localhost:3000"
    ).split(",")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def dev_auth_active(self) -> bool:
        """개발용 로그인은 production이 아닐 때만 허용"""
        return self.DEV_AUTH_ENABLED and not self.is_production

    def all_admin_emails(self) -> list[str]:
        if self.is_production:
            return list(self.ADMIN_EMAILS)
        return [*self.ADMIN_EMAILS, *self.DEV_ADMIN_EMAILS]


config = Config()
