from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from loguru import logger
from supabase import AsyncClient, ClientOptions, create_async_client

from intranet.config import config


async def create_supabase_client() -> AsyncClient:
    """
    Supabase Client 생성 (SERVICE_ROLE_KEY 사용)

    관리자 권한 검사는 애플리케이션에서 수행하므로 RLS를 우회하는 키를 사용합니다.
    """
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError(
            "Supabase configuration missing. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
        )

    return await create_async_client(
        config.SUPABASE_URL,
        config.SUPABASE_SERVICE_ROLE_KEY,
        options=ClientOptions(
            postgrest_client_timeout=config.SUPABASE_TIMEOUT,
            storage_client_timeout=config.SUPABASE_TIMEOUT,
        )
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI Lifespan Context Manager
    애플리케이션 시작/종료 시 리소스를 관리합니다.
    """
    try:
        logger.info("Initializing Supabase Client...")
        app.state.supabase = await create_supabase_client()
        logger.info(
            f"Supabase ready: {config.SUPABASE_URL} "
            f"(delete policy={config.DELETE_POLICY}, order retries={config.ORDER_RETRY_ATTEMPTS})"
        )
        if config.dev_auth_active:
            logger.warning("Development authentication is ENABLED. Never use this in production!")

        yield

    except RuntimeError as e:
        logger.error(
            f"Startup failed: {e} | "
            f"SUPABASE_URL={'set' if config.SUPABASE_URL else 'MISSING'}, "
            f"SUPABASE_SERVICE_ROLE_KEY={'set' if config.SUPABASE_SERVICE_ROLE_KEY else 'MISSING'}"
        )
        raise
    finally:
        # Shutdown
        if getattr(app.state, "supabase", None):
            logger.info("Closing Supabase Client...")
            await app.state.supabase.postgrest.session.aclose()
            logger.info("Supabase Client closed successfully")
