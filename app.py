"""
Food Ordering Demo - API
FastAPI backend for menu browsing, order submission and the contact form
"""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field, validator
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)
logger = structlog.get_logger()

# Database setup
Base = declarative_base()

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    items = Column(JSON, nullable=False)
    customer_info = Column(JSON, nullable=False, default=dict)
    total = Column(Float, nullable=False)
    status = Column(String, default="confirmed")
    estimated_time = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": self.items,
            "customerInfo": self.customer_info,
            "total": self.total,
            "status": self.status,
            "estimatedTime": self.estimated_time,
            "timestamp": self.created_at.isoformat(),
        }

# Pydantic models
class OrderItem(BaseModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)

    @validator('price')
    def round_price(cls, v):
        return round(v, 2)

class CustomerInfo(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""

class OrderCreate(BaseModel):
    items: List[OrderItem] = []
    customer_info: Optional[CustomerInfo] = Field(default_factory=CustomerInfo, alias="customerInfo")
    total: float = Field(0, ge=0)

    @validator('customer_info', pre=True)
    def empty_customer_info(cls, v):
        return {} if v is None else v

class ContactCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None

# Largest id a SQLite INTEGER column can hold
MAX_ORDER_ID = 2**63 - 1

# Global database engine
engine = None
async_session = None

async def get_db() -> AsyncSession:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()

async def init_db(database_url: str):
    """Initialize database tables"""
    global engine, async_session

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # in-memory sqlite lives on a single shared connection
        engine = create_async_engine(
            database_url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(database_url, echo=False, pool_pre_ping=True)

    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("database_initialized", url=database_url)

@lru_cache()
def load_menu(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

async def simulate_latency(settings: Settings):
    if settings.simulated_latency > 0:
        await asyncio.sleep(settings.simulated_latency)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("application_startup", version="1.0.0", menu_items=len(load_menu(settings.menu_path)))
    yield
    await engine.dispose()
    logger.info("application_shutdown")

# Create FastAPI app
app = FastAPI(
    title="Food Ordering API",
    description="Menu, order and contact API for the food ordering demo",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    max_age=600,
)

# Security middleware
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response

# Rate limiting storage, per client IP
request_counts = {}

@app.middleware("http")
async def rate_limit(request: Request, call_next):
    """Fixed one-minute window per IP"""
    limit = get_settings().rate_limit_per_minute
    if limit <= 0:
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"
    now = datetime.utcnow().timestamp()

    # Clean expired windows
    for ip in list(request_counts.keys()):
        if now >= request_counts[ip]["reset_time"]:
            del request_counts[ip]

    if client_ip in request_counts:
        if request_counts[client_ip]["count"] >= limit:
            logger.warning("rate_limit_exceeded", ip=client_ip)
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded. Try again in a minute."}
            )
        request_counts[client_ip]["count"] += 1
    else:
        request_counts[client_ip] = {"count": 1, "reset_time": now + 60}

    return await call_next(request)

# API Routes

@app.get("/menu.json")
async def get_menu_file(settings: Settings = Depends(get_settings)):
    """Raw menu file - cached for 5 minutes"""
    return FileResponse(settings.menu_path, headers={
        "Cache-Control": "public, max-age=300",
        "ETag": "menu-v1"
    })

@app.get("/api/menu")
async def get_menu(category: Optional[str] = None, settings: Settings = Depends(get_settings)):
    """All menu items, or one category via ?category="""
    await simulate_latency(settings)
    items = load_menu(settings.menu_path)
    if category and category != "all":
        return [item for item in items if item["category"] == category]
    return items

@app.get("/api/menu/search/{query}")
async def search_menu(query: str, settings: Settings = Depends(get_settings)):
    """Case-insensitive search over name and description"""
    await simulate_latency(settings)
    term = query.lower()
    return [
        item for item in load_menu(settings.menu_path)
        if term in item["name"].lower() or term in item["description"].lower()
    ]

@app.get("/api/menu/{category}")
async def get_menu_category(category: str, settings: Settings = Depends(get_settings)):
    await simulate_latency(settings)
    return [item for item in load_menu(settings.menu_path) if item["category"] == category]

@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    try:
        async with async_session() as session:
            result = await session.execute(select(func.count()).select_from(OrderModel))
            order_count = result.scalar()

        return {
            "status": "healthy",
            "database": "connected",
            "orders_count": order_count,
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy"
        )

@app.post("/api/orders")
async def create_order(
    order: OrderCreate,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """
    Create a new order. Prices are taken as sent; there is no inventory
    or pricing check.
    """
    if not order.items:
        logger.warning("order_rejected_empty")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order must contain at least one item"
        )

    db_order = OrderModel(
        items=[item.dict() for item in order.items],
        customer_info=order.customer_info.dict(),
        total=order.total,
        status="confirmed",
        estimated_time=settings.estimated_delivery,
    )

    db.add(db_order)
    await db.commit()
    await db.refresh(db_order)

    logger.info(
        "order_created",
        order_id=db_order.id,
        total=order.total,
        items_count=len(order.items)
    )

    await simulate_latency(settings)

    return {
        "success": True,
        "orderId": db_order.id,
        "estimatedTime": db_order.estimated_time,
        "message": "Order placed successfully!"
    }

@app.get("/api/orders/{order_id}")
async def get_order(order_id: str, db: AsyncSession = Depends(get_db)):
    """Get specific order details"""
    order = None
    if order_id.isascii() and order_id.isdigit() and int(order_id) <= MAX_ORDER_ID:
        result = await db.execute(
            select(OrderModel).where(OrderModel.id == int(order_id))
        )
        order = result.scalar_one_or_none()

    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return order.to_dict()

@app.post("/api/contact")
async def submit_contact(contact: ContactCreate, settings: Settings = Depends(get_settings)):
    """Contact form submission"""
    fields = (contact.name, contact.email, contact.message)
    if not all(v and v.strip() for v in fields):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All fields are required"
        )

    logger.info("contact_message_received", email=contact.email)
    await simulate_latency(settings)

    return {
        "success": True,
        "message": "Thank you for your message! We'll get back to you soon."
    }

# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    logger.warning("request_validation_failed", path=request.url.path, errors=problems)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"Invalid request: {problems}"}
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error. Please try again later."}
    )

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "app:app",
        host=settings.host,
        port=settings.port,
        workers=1,
        reload=False,
        log_level="info"
    )
