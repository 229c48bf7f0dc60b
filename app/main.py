import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from app.api.v1 import index
from app.api.v1 import auth
from app.api.v1 import certificate
from app.api.v1 import user


from app.core.config import settings
from app.core.exceptions import CertificateError, PersistenceError
from app.core.logging import setup_logging

setup_logging()

app = FastAPI(title=settings.app_name)

# Middlewares
origins = []

if settings.allowed_hosts:
    origins = settings.allowed_hosts.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CertificateError)
def handle_certificate_error(request: Request, exc: CertificateError):
    if isinstance(exc, PersistenceError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "code": exc.code, "message": exc.message}
    )


# Register routes
app.include_router(index.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(certificate.router,
                   prefix="/api/v1/certificates", tags=["Certificates"])
app.include_router(certificate.admin_router,
                   prefix="/api/v1/admin/certificates", tags=["Review"])
app.include_router(user.router, prefix="/api/v1/admin/users", tags=["Users"])

# Uploaded certificate images
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=None,
    )
