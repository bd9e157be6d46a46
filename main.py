import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import database
from catalog import CatalogStore
from database import ensure_indexes, get_db
from errors import AdminError
from orders import create_order, get_dashboard, list_orders
from schemas import (
    Category as CategorySchema,
    CategoryUpdate,
    OrderCreate,
    Product as ProductSchema,
    ProductUpdate,
    User as UserSchema,
    UserUpdate,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ENFORCE_REFERENCES = os.getenv("ENFORCE_REFERENCES", "false").lower() in ("1", "true", "yes")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        ensure_indexes(database.db)
    else:
        logger.warning("DATABASE_URL/DATABASE_NAME not set, data routes will fail")
    yield


app = FastAPI(title="Admin Back-Office API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Errors
@app.exception_handler(AdminError)
async def admin_error_handler(request: Request, exc: AdminError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    field = field or "request body"
    kind = first.get("type")
    if kind == "missing":
        message = f"Missing required field: {field}"
    elif kind == "extra_forbidden":
        message = f"Unrecognized field: {field}"
    else:
        message = f"Missing or invalid required field: {field}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


def get_catalog(db: Database = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


@app.get("/")
def read_root():
    return {"message": "Admin back-office backend is running"}


router = APIRouter(prefix="/api/admin")


# Users
@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: Optional[str] = None,
    catalog: CatalogStore = Depends(get_catalog),
):
    users, pagination = catalog.users.list(page, limit, search)
    return {"users": users, "pagination": pagination, "message": "Users fetched successfully"}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def add_user(user: UserSchema, catalog: CatalogStore = Depends(get_catalog)):
    created = catalog.users.create(user)
    return {"message": "User added successfully", "user": created}


@router.get("/users/{user_id}")
def get_user(user_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return {"message": "User fetched successfully", "user": catalog.users.get(user_id)}


@router.put("/users/{user_id}")
def edit_user(user_id: str, changes: UserUpdate, catalog: CatalogStore = Depends(get_catalog)):
    updated = catalog.users.update(user_id, changes)
    return {"message": "User updated successfully", "user": updated}


@router.delete("/users/{user_id}")
def delete_user(user_id: str, catalog: CatalogStore = Depends(get_catalog)):
    deleted = catalog.users.delete(user_id)
    return {"message": "User deleted successfully", "user": deleted}


# Categories
@router.get("/categories")
def list_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: Optional[str] = None,
    catalog: CatalogStore = Depends(get_catalog),
):
    categories, pagination = catalog.categories.list(page, limit, search)
    return {"categories": categories, "pagination": pagination, "message": "Categories fetched successfully"}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def add_category(category: CategorySchema, catalog: CatalogStore = Depends(get_catalog)):
    created = catalog.categories.create(category)
    return {"message": "Category added successfully", "category": created}


@router.get("/categories/{category_id}")
def get_category(category_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return {"message": "Category fetched successfully", "category": catalog.categories.get(category_id)}


@router.put("/categories/{category_id}")
def edit_category(category_id: str, changes: CategoryUpdate, catalog: CatalogStore = Depends(get_catalog)):
    updated = catalog.categories.update(category_id, changes)
    return {"message": "Category updated successfully", "category": updated}


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, catalog: CatalogStore = Depends(get_catalog)):
    deleted = catalog.categories.delete(category_id)
    return {"message": "Category deleted successfully", "category": deleted}


# Products
@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: Optional[str] = None,
    catalog: CatalogStore = Depends(get_catalog),
):
    products, pagination = catalog.products.list(page, limit, search)
    return {"products": products, "pagination": pagination, "message": "Products fetched successfully"}


@router.post("/products", status_code=status.HTTP_201_CREATED)
def add_product(product: ProductSchema, catalog: CatalogStore = Depends(get_catalog)):
    created = catalog.products.create(product)
    return {"message": "Product added successfully", "product": created}


@router.get("/products/{product_id}")
def get_product(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return {"message": "Product fetched successfully", "product": catalog.products.get(product_id)}


@router.put("/products/{product_id}")
def edit_product(product_id: str, changes: ProductUpdate, catalog: CatalogStore = Depends(get_catalog)):
    updated = catalog.products.update(product_id, changes)
    return {"message": "Product updated successfully", "product": updated}


@router.delete("/products/{product_id}")
def delete_product(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    deleted = catalog.products.delete(product_id)
    return {"message": "Product deleted successfully", "product": deleted}


# Orders
@router.get("/orders")
def get_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Database = Depends(get_db),
):
    orders, pagination = list_orders(db, page, limit)
    return {"orders": orders, "pagination": pagination, "message": "Orders fetched successfully"}


@router.post("/orders", status_code=status.HTTP_201_CREATED)
def place_order(order: OrderCreate, db: Database = Depends(get_db)):
    created = create_order(db, order, enforce_references=ENFORCE_REFERENCES)
    return {"message": "Order placed successfully", "order": created}


@router.get("/dashboard")
def dashboard(db: Database = Depends(get_db)):
    return {"message": "Dashboard fetched successfully", **get_dashboard(db)}


app.include_router(router)


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": "✅ Set" if os.getenv("DATABASE_NAME") else "❌ Not Set",
        "collections": [],
    }
    if database.db is not None:
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            logger.warning("Database check failed: %s", e)
            response["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
