import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Annotated
from uuid import uuid4

from PIL import Image
from fastapi import Depends, FastAPI, HTTPException, UploadFile, File, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session, col, select

from . import models, security
from .bookkeeping_routes import router as bookkeeping_router
from .db import check_db_connection, create_db_and_tables, get_session
from .order_lifecycle import Err, OrderErrorKind, OrderLifecycle
from .pdf_generator import generate_receipt_pdf
from .permissions import Permissions, PermissionService
from .repositories import OrderRepository, SaleRepository, TableRepository
from .security import PermissionChecker
from .settings import settings
from .users_routes import router as users_router

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application...")
    create_db_and_tables()
    yield
    logger.info("Shutting down application...")


app = FastAPI(
    title="RestoBar POS API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Parse CORS origins from environment (comma-separated)
cors_origins_list = [
    origin.strip()
    for origin in settings.cors_origins.split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploads directory for product images
UPLOADS_DIR = Path(settings.uploads_dir)
PRODUCT_IMAGES_DIR = UPLOADS_DIR / "products"
PRODUCT_IMAGES_DIR.mkdir(parents=True, exist_ok=True)
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
MAX_IMAGE_SIZE = 2 * 1024 * 1024  # 2MB

# Image optimization settings
MAX_IMAGE_WIDTH = 1920
MAX_IMAGE_HEIGHT = 1920
JPEG_QUALITY = 85
WEBP_QUALITY = 85

# Mount static files for serving images
app.mount("/uploads", StaticFiles(directory=str(UPLOADS_DIR)), name="uploads")

app.include_router(users_router, tags=["Users"])
app.include_router(bookkeeping_router, tags=["Bookkeeping"])

PAYMENT_METHOD_LABELS = {
    "cash": "Cash",
    "orange_money": "Orange Money",
    "mtn_momo": "MTN Mobile Money",
    "moov_money": "Moov Money",
    "wave": "Wave",
}

# Coordinator failures mapped onto HTTP statuses
ERROR_STATUS = {
    OrderErrorKind.validation: status.HTTP_400_BAD_REQUEST,
    OrderErrorKind.not_found: status.HTTP_404_NOT_FOUND,
}

# Order columns that cannot be cleared through a patch
NON_NULLABLE_ORDER_FIELDS = ("status", "payment_status", "total")


def get_lifecycle(session: Session = Depends(get_session)) -> OrderLifecycle:
    return OrderLifecycle(
        OrderRepository(session),
        TableRepository(session),
        SaleRepository(session),
    )


def get_table_repository(session: Session = Depends(get_session)) -> TableRepository:
    return TableRepository(session)


def unwrap(result):
    if isinstance(result, Err):
        raise HTTPException(status_code=ERROR_STATUS[result.error.kind], detail=result.error.message)
    return result.value


# ============ IMAGE OPTIMIZATION ============

def optimize_image(image_data: bytes, content_type: str) -> bytes:
    """
    Optimize image locally using Pillow.
    - Resizes if too large
    - Compresses JPEG/WebP with quality settings
    - Optimizes PNG files
    Returns optimized image data, or the original bytes if Pillow cannot read them.
    """
    try:
        image = Image.open(BytesIO(image_data))
        original_format = image.format
        original_size = len(image_data)
        as_jpeg = content_type == "image/jpeg" or original_format == "JPEG"

        if as_jpeg and image.mode in ("RGBA", "LA", "P"):
            # JPEG has no alpha channel: flatten onto white
            if image.mode != "RGBA":
                image = image.convert("RGBA")
            background = Image.new("RGB", image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[-1])
            image = background
        elif as_jpeg and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        width, height = image.size
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            ratio = min(MAX_IMAGE_WIDTH / width, MAX_IMAGE_HEIGHT / height)
            new_size = (int(width * ratio), int(height * ratio))
            image = image.resize(new_size, Image.Resampling.LANCZOS)
            logger.info(f"Image resized: {width}x{height} -> {new_size[0]}x{new_size[1]}")

        output = BytesIO()
        if as_jpeg:
            image.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
        elif content_type == "image/webp" or original_format == "WEBP":
            image.save(output, format="WEBP", quality=WEBP_QUALITY, method=6)
        else:
            image.save(output, format="PNG", optimize=True)

        optimized_data = output.getvalue()
        logger.info(
            f"Image optimized: {original_size / 1024:.1f}KB -> {len(optimized_data) / 1024:.1f}KB"
        )
        return optimized_data

    except Exception as e:
        logger.warning(f"Error optimizing image: {e}, using original image")
        return image_data


# ============ HEALTH ============

@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/health/db")
def health_db() -> dict:
    """Check database connection."""
    try:
        check_db_connection()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise HTTPException(status_code=503, detail=f"Database error: {e}")
    return {"status": "ok", "database": "connected"}


# ============ AUTH ============

@app.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    user_data: models.UserRegister,
    session: Session = Depends(get_session)
) -> models.UserRead:
    """Create the first administrator account. Closed once any user exists."""
    if session.exec(select(models.User.id)).first() is not None:
        raise HTTPException(status_code=409, detail="Setup already completed")

    user = models.User(
        username=user_data.username,
        hashed_password=security.get_password_hash(user_data.password),
        full_name=user_data.full_name,
        role=models.UserRole.admin,
        permissions=PermissionService.default_permissions(models.UserRole.admin),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info(f"Administrator account '{user.username}' created")
    return user


@app.post("/token")
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Session = Depends(get_session)
):
    statement = select(models.User).where(models.User.username == form_data.username)
    user = session.exec(statement).first()

    if not user or not user.is_active or not security.verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Failed login attempt for '{form_data.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = security.create_access_token(
        data={"sub": user.username, "role": user.role.value},
        expires_delta=security.timedelta(minutes=settings.access_token_expire_minutes)
    )

    response = JSONResponse(content={
        "access_token": access_token,
        "token_type": "bearer",
        "user": models.UserRead.model_validate(user).model_dump(mode="json"),
    })
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=settings.is_production,  # Only enforce HTTPS in production
        samesite="lax",
        path="/",
        max_age=settings.access_token_expire_minutes * 60
    )
    return response


@app.post("/logout")
def logout():
    response = JSONResponse(content={"status": "success", "message": "Logged out"})
    response.delete_cookie(key="access_token", path="/")  # Must match path used in set_cookie
    return response


@app.get("/users/me")
def read_users_me(
    current_user: Annotated[models.User, Depends(security.get_current_user)]
) -> models.UserRead:
    return current_user


# ============ CATEGORIES ============

@app.get("/categories")
def list_categories(session: Session = Depends(get_session)) -> list[models.Category]:
    return session.exec(select(models.Category).order_by(models.Category.name)).all()


@app.post("/categories", status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: models.CategoryCreate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.CATEGORIES_CREATE))],
    session: Session = Depends(get_session)
) -> models.Category:
    category = models.Category.model_validate(category_data)
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@app.put("/categories/{category_id}")
def update_category(
    category_id: int,
    category_update: models.CategoryUpdate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.CATEGORIES_EDIT))],
    session: Session = Depends(get_session)
) -> models.Category:
    category = session.get(models.Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    category.sqlmodel_update(category_update.model_dump(exclude_unset=True))
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@app.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.CATEGORIES_DELETE))],
    session: Session = Depends(get_session)
) -> dict:
    category = session.get(models.Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    in_use = session.exec(
        select(models.Product.id).where(models.Product.category_id == category_id)
    ).first()
    if in_use is not None:
        raise HTTPException(status_code=400, detail="Category still has products")

    session.delete(category)
    session.commit()
    return {"status": "deleted", "id": category_id}


# ============ PRODUCTS ============

def _check_category(session: Session, category_id: int | None) -> None:
    if category_id is not None and session.get(models.Category, category_id) is None:
        raise HTTPException(status_code=400, detail="Invalid category")


@app.get("/products")
def list_products(
    session: Session = Depends(get_session),
    category_id: int | None = None,
) -> list[models.Product]:
    """List non-archived products, optionally for one category."""
    statement = select(models.Product).where(col(models.Product.archived).is_(False))
    if category_id is not None:
        statement = statement.where(models.Product.category_id == category_id)
    return session.exec(statement.order_by(models.Product.name)).all()


@app.get("/products/{product_id}")
def get_product(
    product_id: int,
    session: Session = Depends(get_session)
) -> models.Product:
    product = session.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/products", status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: models.ProductCreate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.PRODUCTS_CREATE))],
    session: Session = Depends(get_session)
) -> models.Product:
    _check_category(session, product_data.category_id)
    product = models.Product.model_validate(product_data)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@app.put("/products/{product_id}")
def update_product(
    product_id: int,
    product_update: models.ProductUpdate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.PRODUCTS_EDIT))],
    session: Session = Depends(get_session)
) -> models.Product:
    product = session.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    changes = product_update.model_dump(exclude_unset=True)
    if "category_id" in changes:
        _check_category(session, changes["category_id"])

    # Existing order items keep their own price snapshot
    product.sqlmodel_update(changes)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@app.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.PRODUCTS_DELETE))],
    session: Session = Depends(get_session)
) -> dict:
    """Delete a product, or archive it when order history references it."""
    product = session.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    ordered = session.exec(
        select(models.OrderItem.id).where(models.OrderItem.product_id == product_id)
    ).first()
    if ordered is not None:
        product.archived = True
        product.available = False
        session.add(product)
        session.commit()
        logger.info(f"Product #{product_id} archived (referenced by orders)")
        return {"status": "archived", "id": product_id}

    if product.image_filename:
        image_path = PRODUCT_IMAGES_DIR / product.image_filename
        if image_path.exists():
            image_path.unlink()

    session.delete(product)
    session.commit()
    return {"status": "deleted", "id": product_id}


@app.post("/products/{product_id}/image")
async def upload_product_image(
    product_id: int,
    file: Annotated[UploadFile, File()],
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.PRODUCTS_EDIT))],
    session: Session = Depends(get_session)
) -> models.Product:
    """Upload an image for a product. Validates file type and size."""
    product = session.get(models.Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}"
        )

    contents = await file.read()
    if len(contents) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {MAX_IMAGE_SIZE // (1024*1024)}MB"
        )

    contents = optimize_image(contents, file.content_type)

    PRODUCT_IMAGES_DIR.mkdir(parents=True, exist_ok=True)
    if product.image_filename:
        old_path = PRODUCT_IMAGES_DIR / product.image_filename
        if old_path.exists():
            old_path.unlink()

    ext = Path(file.filename or "image.jpg").suffix.lower()
    if ext not in [".jpg", ".jpeg", ".png", ".webp"]:
        ext = ".jpg"
    new_filename = f"{uuid4()}{ext}"
    (PRODUCT_IMAGES_DIR / new_filename).write_bytes(contents)

    product.image_filename = new_filename
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


# ============ PUBLIC MENU ============

@app.get("/menu/{table_number}")
def get_menu(
    table_number: int,
    tables: TableRepository = Depends(get_table_repository),
    session: Session = Depends(get_session)
) -> models.MenuResponse:
    """Public endpoint - menu for the table a customer scanned."""
    table = tables.get_table_by_number(table_number)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")

    products = session.exec(
        select(models.Product)
        .where(
            col(models.Product.archived).is_(False),
            col(models.Product.available).is_(True),
        )
        .order_by(models.Product.name)
    ).all()
    categories = session.exec(select(models.Category).order_by(models.Category.name)).all()
    return models.MenuResponse(table=table, categories=categories, products=products)


# ============ TABLES ============

@app.get("/tables")
def list_tables(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.TABLES_VIEW))],
    tables: TableRepository = Depends(get_table_repository)
) -> list[models.Table]:
    return tables.list_tables()


@app.get("/tables/{table_id}")
def get_table(
    table_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.TABLES_VIEW))],
    tables: TableRepository = Depends(get_table_repository)
) -> models.Table:
    table = tables.get_table(table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return table


@app.post("/tables", status_code=status.HTTP_201_CREATED)
def create_table(
    table_data: models.TableCreate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.TABLES_CREATE))],
    tables: TableRepository = Depends(get_table_repository)
) -> models.Table:
    if tables.get_table_by_number(table_data.number):
        raise HTTPException(status_code=400, detail=f"Table {table_data.number} already exists")

    table = models.Table(
        number=table_data.number,
        capacity=table_data.capacity,
        qr_code=settings.table_url(table_data.number),
    )
    return tables.create_table(table)


@app.put("/tables/{table_id}")
def update_table(
    table_id: int,
    table_update: models.TableUpdate,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.TABLES_EDIT))],
    tables: TableRepository = Depends(get_table_repository)
) -> models.Table:
    table = tables.get_table(table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")

    changes = {k: v for k, v in table_update.model_dump(exclude_unset=True).items() if v is not None}
    number = changes.get("number")
    if number is not None and number != table.number:
        if tables.get_table_by_number(number):
            raise HTTPException(status_code=400, detail=f"Table {number} already exists")
        changes.setdefault("qr_code", settings.table_url(number))

    return tables.update_table(table_id, changes)


@app.delete("/tables/{table_id}")
def delete_table(
    table_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.TABLES_DELETE))],
    tables: TableRepository = Depends(get_table_repository)
) -> dict:
    if not tables.get_table(table_id):
        raise HTTPException(status_code=404, detail="Table not found")
    if tables.is_referenced(table_id):
        raise HTTPException(status_code=400, detail="Table has orders and cannot be deleted")

    tables.delete_table(table_id)
    return {"status": "deleted", "id": table_id}


@app.get("/tables/{table_id}/qrcode")
def get_table_qrcode(
    table_id: int,
    current_user: Annotated[
        models.User,
        Depends(PermissionChecker(Permissions.TABLES_GENERATE_QR, Permissions.TABLES_VIEW))
    ],
    tables: TableRepository = Depends(get_table_repository)
) -> dict:
    table = tables.get_table(table_id)
    if not table:
        raise HTTPException(status_code=404, detail="Table not found")
    return {"table_id": table.id, "number": table.number, "qr_code": table.qr_code}


# ============ ORDERS ============

@app.get("/orders")
def list_orders(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ORDERS_VIEW))],
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    active: bool = False,
) -> list[models.OrderWithItems]:
    """List orders, newest first. `active=true` keeps only orders still in progress."""
    return lifecycle.orders.list_orders(active_only=active)


@app.get("/orders/{order_id}")
def get_order(
    order_id: int,
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
) -> models.OrderWithItems:
    """Public endpoint - customers follow their order from the table."""
    order = lifecycle.orders.get_order_with_items(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@app.post("/orders", status_code=status.HTTP_201_CREATED)
def create_order(
    order_data: models.OrderCreate,
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
    session: Session = Depends(get_session)
) -> models.OrderWithItems:
    """Public endpoint - place an order from a table (QR ordering)."""
    product_ids = {item.product_id for item in order_data.order_items}
    if product_ids:
        found = set(session.exec(
            select(models.Product.id).where(
                col(models.Product.id).in_(product_ids),
                col(models.Product.archived).is_(False),
            )
        ).all())
        missing = sorted(product_ids - found)
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown product(s): {', '.join(str(pid) for pid in missing)}"
            )

    return unwrap(lifecycle.create_order(order_data))


@app.put("/orders/{order_id}")
def update_order(
    order_id: int,
    order_update: models.OrderUpdate,
    current_user: Annotated[
        models.User,
        Depends(PermissionChecker(Permissions.ORDERS_EDIT, Permissions.ORDERS_UPDATE_STATUS))
    ],
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
) -> models.OrderWithItems:
    patch = {
        key: value
        for key, value in order_update.model_dump(exclude_unset=True).items()
        if value is not None or key not in NON_NULLABLE_ORDER_FIELDS
    }
    order = unwrap(lifecycle.update_order(order_id, patch))
    logger.info(f"Order #{order_id} updated by {current_user.username}: {sorted(patch)}")
    return lifecycle.orders.with_items(order)


@app.delete("/orders/{order_id}")
def delete_order(
    order_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ORDERS_DELETE))],
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
) -> dict:
    unwrap(lifecycle.delete_order(order_id))
    return {"status": "deleted", "id": order_id}


# ============ RECEIPTS ============

def build_receipt(order: models.OrderWithItems, table: models.Table | None) -> models.Receipt:
    items = [
        models.ReceiptItem(
            name=item.product.name if item.product else f"Product #{item.product_id}",
            quantity=item.quantity,
            price=item.price,
            total=item.price * item.quantity,
        )
        for item in order.items
    ]
    return models.Receipt(
        order_id=order.id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        table_number=table.number if table else None,
        items=items,
        subtotal=sum((item.total for item in items), Decimal("0.00")),
        total=order.total,
        payment_method=order.payment_method,
        payment_date=order.completed_at or order.created_at,
        restaurant_name=settings.restaurant_name,
        restaurant_address=settings.restaurant_address or None,
        restaurant_phone=settings.restaurant_phone or None,
    )


def _paid_order_receipt(order_id: int, lifecycle: OrderLifecycle) -> models.Receipt:
    order = lifecycle.orders.get_order_with_items(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.payment_status != models.PaymentStatus.paid:
        raise HTTPException(status_code=400, detail="Order has not been paid")
    return build_receipt(order, lifecycle.tables.get_table(order.table_id))


@app.get("/orders/{order_id}/receipt")
def get_order_receipt(
    order_id: int,
    current_user: Annotated[
        models.User,
        Depends(PermissionChecker(Permissions.ORDERS_VIEW, Permissions.SALES_VIEW))
    ],
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
) -> models.Receipt:
    return _paid_order_receipt(order_id, lifecycle)


@app.get("/orders/{order_id}/receipt.pdf")
def get_order_receipt_pdf(
    order_id: int,
    current_user: Annotated[
        models.User,
        Depends(PermissionChecker(Permissions.ORDERS_VIEW, Permissions.SALES_VIEW))
    ],
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
):
    receipt = _paid_order_receipt(order_id, lifecycle)
    pdf_buffer = generate_receipt_pdf(receipt.model_dump(), currency=settings.currency)
    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="receipt-{order_id}.pdf"',
        }
    )


# ============ ARCHIVES ============

@app.get("/archives/orders")
def list_archived_orders(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ARCHIVES_VIEW))],
    lifecycle: OrderLifecycle = Depends(get_lifecycle)
) -> list[models.OrderWithItems]:
    return lifecycle.orders.list_deleted_orders()


@app.get("/archives/products")
def list_archived_products(
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ARCHIVES_VIEW))],
    session: Session = Depends(get_session)
) -> list[models.Product]:
    return session.exec(
        select(models.Product)
        .where(col(models.Product.archived).is_(True))
        .order_by(models.Product.name)
    ).all()


@app.put("/archives/products/{product_id}/restore")
def restore_product(
    product_id: int,
    current_user: Annotated[models.User, Depends(PermissionChecker(Permissions.ARCHIVES_RESTORE))],
    session: Session = Depends(get_session)
) -> models.Product:
    product = session.get(models.Product, product_id)
    if not product or not product.archived:
        raise HTTPException(status_code=404, detail="Archived product not found")

    product.archived = False
    product.available = True
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


# ============ PAYMENT METHODS ============

@app.get("/payment-methods")
def list_payment_methods() -> list[dict]:
    return [
        {"id": method, "label": PAYMENT_METHOD_LABELS.get(method, method.replace("_", " ").title())}
        for method in settings.enabled_payment_methods
    ]

