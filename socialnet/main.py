import logging

import socketio
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from socialnet.api.auth.router import router as auth_router
from socialnet.api.friends.router import router as friends_router
from socialnet.api.notifications.router import router as notifications_router
from socialnet.core.config import settings
from socialnet.database.database import get_db
from socialnet.websocket.websocket_manager import get_connection_stats, sio

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="API социальной сети: друзья, заявки, уведомления",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(friends_router)
app.include_router(notifications_router)

socket_app = socketio.ASGIApp(sio, app)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Все HTTP-ошибки отдаются в едином виде {message, code}"""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"message": str(exc.detail), "code": f"HTTP_{exc.status_code}"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "message": "Некорректные данные запроса",
            "code": "VALIDATION_ERROR",
            "errors": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg")}
                for error in exc.errors()
            ],
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "message": "Внутренняя ошибка сервера",
            "code": "INTERNAL_ERROR",
        }
    )


@app.get("/api/health")
async def health(db: Session = Depends(get_db)):
    """Проверка работоспособности"""
    try:
        db.connection()
        return {"status": "healthy", "database": "connected", "realtime": get_connection_stats()}
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        socket_app,
        host="127.0.0.1",
        port=8000,
        log_level="info",
    )
