"""FastAPI 애플리케이션"""
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from intranet.auth import auth_router
from intranet.config import config
from .lifespan import lifespan
from .links import router as links_router


class HealthResponse(BaseModel):
    status: str


# 앱 생성
app = FastAPI(
    title="Staff Intranet",
    description="사내 인트라넷 링크 분류 체계 API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """요청 검증 실패는 422 대신 400으로 응답"""
    errors = exc.errors()
    message = errors[0]["msg"].removeprefix("Value error, ") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message, "errors": jsonable_encoder(errors)},
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """헬스 체크"""
    return HealthResponse(status="ok")


# API 라우트 등록
app.include_router(auth_router, prefix="/api")
app.include_router(links_router, prefix="/api")
