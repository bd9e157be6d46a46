"""
Order placement and the dashboard snapshot.
"""
import logging
import math
from typing import List, Optional, Tuple

from pymongo.database import Database

from catalog import CatalogStore, paginate
from database import ORDERS, PRODUCTS, USERS, create_document, store_operation
from errors import ValidationError
from schemas import Order, OrderCreate, OrderItem

logger = logging.getLogger(__name__)


def _finite_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def validate_order(payload: OrderCreate) -> Tuple[str, str, int, float]:
    """Return (userId, productId, quantity, totalAmount) or raise for the first bad field.

    Fields are checked in that order, so a request with several problems
    always reports the earliest one.
    """
    if not payload.userId or not isinstance(payload.userId, str):
        raise ValidationError("Missing required field: userId")
    if not payload.productId or not isinstance(payload.productId, str):
        raise ValidationError("Missing required field: productId")
    quantity = _finite_number(payload.quantity)
    if quantity is None or not quantity.is_integer() or quantity < 1:
        raise ValidationError("Missing or invalid required field: quantity")
    total_amount = _finite_number(payload.totalAmount)
    if total_amount is None or total_amount <= 0:
        raise ValidationError("Missing or invalid required field: totalAmount")
    return payload.userId, payload.productId, int(quantity), total_amount


def create_order(db: Database, payload: OrderCreate, enforce_references: bool = False) -> dict:
    user_id, product_id, quantity, total_amount = validate_order(payload)

    if enforce_references:
        # get() raises NotFound for ids that do not resolve
        catalog = CatalogStore(db)
        catalog.users.get(user_id)
        catalog.products.get(product_id)

    # A single line item; its unit price is implied by the total.
    unit_price = total_amount / quantity
    order = Order(
        userId=user_id,
        items=[OrderItem(productId=product_id, quantity=quantity, unitPrice=unit_price)],
        totalAmount=total_amount,
    )
    with store_operation("create order"):
        record = create_document(db, ORDERS, order)
    logger.info("Order %s placed by user %s for %.2f", record["id"], user_id, total_amount)
    return record


def list_orders(db: Database, page: int = 1, limit: int = 10) -> Tuple[List[dict], dict]:
    return paginate(db[ORDERS], {}, page, limit, total_key="totalOrders")


def get_dashboard(db: Database) -> dict:
    with store_operation("compute dashboard"):
        total_users = db[USERS].count_documents({})
        total_products = db[PRODUCTS].count_documents({})
        total_orders = db[ORDERS].count_documents({})
        revenue = list(
            db[ORDERS].aggregate([{"$group": {"_id": None, "total": {"$sum": "$totalAmount"}}}])
        )

    return {
        "totalUsers": total_users,
        "totalProducts": total_products,
        "totalOrders": total_orders,
        "totalRevenue": revenue[0]["total"] if revenue else 0,
    }
