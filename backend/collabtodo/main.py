import os
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .auth import get_jwt_secret
from .database import engine, Base
from .errors import AppError
from .routes import collaboration, deleted_todos, files, todos, users

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    # refuse to start without a signing secret
    get_jwt_secret()

    Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Collaborative Todo API")

    origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        problems = [
            ".".join(str(part) for part in err.get("loc", ())) + ": " + err.get("msg", "invalid")
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"detail": "Invalid request: " + "; ".join(problems)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(users.router)
    app.include_router(todos.router)
    app.include_router(deleted_todos.router)
    app.include_router(collaboration.router)
    app.include_router(files.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
