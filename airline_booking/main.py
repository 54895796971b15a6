from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from airline_booking.config import settings
from airline_booking.logging_config import configure_logging
from airline_booking.seats import router as seats_router
from airline_booking.pricing import router as pricing_router
from airline_booking.bookings import router as bookings_router
from airline_booking.refunds import router as refunds_router

configure_logging()

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Airline Seat Inventory & Booking API",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    seats_router,
    prefix=f"{settings.API_V1_STR}/seats",
    tags=["Seat Holds"]
)

app.include_router(
    pricing_router,
    prefix=f"{settings.API_V1_STR}/pricing",
    tags=["Pricing"]
)

app.include_router(
    bookings_router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings"]
)

app.include_router(
    refunds_router,
    prefix=f"{settings.API_V1_STR}/refunds",
    tags=["Refunds & Reschedules"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Airline Seat Inventory & Booking API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
