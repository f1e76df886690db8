
from sqlalchemy import select, delete as sql_delete
from inkwell.models.category import Category
from inkwell.rpc.errors import ErrorType, RPCError
from inkwell.rpc.middleware import require_permission
from inkwell.rpc.procedures import RPCRouter
from inkwell.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from inkwell.schemas.common import Id, SlugIn
from inkwell.utils.slug import CATEGORY_SLUG_MAX_LENGTH, CATEGORY_SLUG_MIN_LENGTH, ensure_unique_slug

router = RPCRouter("categories")

can_manage = require_permission("categories:manage")

def ensure_unique_category_slug(db, source: str, exclude_id: int | None = None) -> str:
    return ensure_unique_slug(
        db,
        Category,
        source,
        exclude_id=exclude_id,
        max_length=CATEGORY_SLUG_MAX_LENGTH,
        min_length=CATEGORY_SLUG_MIN_LENGTH,
        prefix="category",
    )

def _get_or_404(db, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise RPCError(ErrorType.NOT_FOUND, "Category not found")
    return category

@router.query("list")
def list_categories(ctx, _):
    rows = ctx.db.execute(select(Category).order_by(Category.name)).scalars()
    return [CategoryOut.model_validate(c) for c in rows]

@router.query("getById", input=Id)
def get_by_id(ctx, category_id: int):
    return CategoryOut.model_validate(_get_or_404(ctx.db, category_id))

@router.query("getBySlug", input=SlugIn)
def get_by_slug(ctx, body: SlugIn):
    category = ctx.db.execute(select(Category).where(Category.slug == body.slug)).scalar_one_or_none()
    if category is None:
        raise RPCError(ErrorType.NOT_FOUND, "Category not found")
    return CategoryOut.model_validate(category)

@router.mutation("create", input=CategoryCreate, use=[can_manage])
def create_category(ctx, body: CategoryCreate):
    slug = ensure_unique_category_slug(ctx.db, body.slug or body.name)
    category = Category(name=body.name, slug=slug, description=body.description)
    ctx.db.add(category)
    ctx.db.commit()
    ctx.db.refresh(category)
    return CategoryOut.model_validate(category)

@router.mutation("update", input=CategoryUpdate, use=[can_manage])
def update_category(ctx, body: CategoryUpdate):
    category = _get_or_404(ctx.db, body.id)
    changes = body.changes()

    explicit_slug = changes.pop("slug", None)
    if explicit_slug:
        category.slug = ensure_unique_category_slug(ctx.db, explicit_slug, exclude_id=category.id)
    elif "name" in changes and changes["name"] != category.name:
        category.slug = ensure_unique_category_slug(ctx.db, changes["name"], exclude_id=category.id)

    for field, value in changes.items():
        setattr(category, field, value)

    ctx.db.commit()
    ctx.db.refresh(category)
    return CategoryOut.model_validate(category)

@router.mutation("delete", input=Id, use=[can_manage])
def delete_category(ctx, category_id: int):
    result = ctx.db.execute(sql_delete(Category).where(Category.id == category_id))
    if result.rowcount == 0:
        raise RPCError(ErrorType.NOT_FOUND, "Category not found")
    ctx.db.commit()
    return {"id": category_id}
