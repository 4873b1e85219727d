from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slotwise.database import Base, engine
from slotwise.exceptions import DomainException
from slotwise.middleware import add_request_id_and_process_time
from slotwise.models import booking_event_model, booking_model, service_model, user_model, working_window_model  # noqa: F401
from slotwise.routes.user_route import user_router
from slotwise.routes.service_route import service_router
from slotwise.routes.booking_route import booking_router


Base.metadata.create_all(bind=engine)
app = FastAPI(
    title="Slotwise API",
    version="1.0.0",
    description="Local-services booking marketplace: browse services, book provider time slots and settle payment with a two-party confirmation.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(add_request_id_and_process_time)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.get("/", status_code=200)
async def home():
    return {"message": "Welcome to the Slotwise booking API"}


@app.get("/health", status_code=200)
async def health():
    return {"status": "ok"}


app.include_router(user_router, prefix="/api", tags=["Users"])
app.include_router(service_router, prefix="/api", tags=["Services"])
app.include_router(booking_router, prefix="/api", tags=["Bookings"])
