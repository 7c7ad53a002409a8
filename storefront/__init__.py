import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

load_dotenv()

from storefront.core.config import Config
from storefront.db.database import close_db, init_db
from storefront.exceptions import (
    create_exception_handler,
    AuthenticationRequiredException,
    CouponAlreadyExistsException,
    CouponLookupFailedException,
    CouponNotFoundException,
    IllegalStatusTransitionException,
    OrderNotFoundException,
    OrderPersistenceException,
)
from storefront.routers.admin import router as admin_router
from storefront.routers.coupons import router as coupons_router
from storefront.routers.orders import router as orders_router

api_version = "v1"
swagger_docs_url = f"/api/{api_version}/docs"
redoc_docs_url = f"/api/{api_version}/redoc"
openapi_url = f"/api/{api_version}/openapi.json"


def configure_logging():
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger(__name__).setLevel(Config.LOG_LEVEL.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if Config.AUTO_CREATE_TABLES:
        await init_db()
    yield
    await close_db()


app = FastAPI(
    docs_url=swagger_docs_url,
    redoc_url=redoc_docs_url,
    openapi_url=openapi_url,
    title=f"{Config.STORE_NAME} API",
    description="Storefront and admin console API: checkout with coupons, order tracking and order management.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        'http://localhost',
        'http://localhost:3000',
    ],
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'],
    allow_headers=["*"],
)

# Register endpoints
app.include_router(coupons_router, prefix=f'/api/{api_version}/coupons', tags=["Coupons"])
app.include_router(orders_router, prefix=f'/api/{api_version}/orders', tags=['Orders'])
app.include_router(admin_router, prefix=f'/api/{api_version}/admin', tags=["Admin"])


@app.get("/")
async def root():
    return {
        "message": f"{Config.STORE_NAME} API",
        "version": "1.0.0",
        "docs": swagger_docs_url,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Register custom exceptions

app.add_exception_handler(AuthenticationRequiredException, create_exception_handler(401, "Authentication required!"))

# Coupon-related exception handlers
app.add_exception_handler(CouponAlreadyExistsException, create_exception_handler(409, "A coupon with this code already exists!"))
app.add_exception_handler(CouponNotFoundException, create_exception_handler(404, "Coupon not found."))
app.add_exception_handler(CouponLookupFailedException, create_exception_handler(503, "We couldn't check this coupon right now. Please try again."))

# Order-related exception handlers
app.add_exception_handler(OrderNotFoundException, create_exception_handler(404, "Order not found."))
app.add_exception_handler(IllegalStatusTransitionException, create_exception_handler(409, "This order can't be moved to the requested status."))
app.add_exception_handler(OrderPersistenceException, create_exception_handler(503, "We couldn't save the order. Please try again."))
