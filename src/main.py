from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.config import settings
from src.domain.errors import AppError, KioskError
from src.observability import configure_logging
from src.routers import (
    auth_routes,
    users,
    students,
    teachers,
    attendance,
    biometric,
    kiosk,
    super_admin,
)

configure_logging(settings.log_level)

app = FastAPI(title="School Attendance API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    request_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid4())
    )
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(KioskError)
async def kiosk_error_handler(_: Request, exc: KioskError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_body())


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content={"detail": exc.message})


app.include_router(auth_routes.router)
app.include_router(users.router)
app.include_router(students.router)
app.include_router(teachers.router)
app.include_router(attendance.router)
app.include_router(biometric.router)
app.include_router(kiosk.router)
app.include_router(super_admin.router)


@app.get("/")
async def root():
    return {"status": "ok", "service": "school-attendance"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
