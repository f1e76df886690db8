
import math
from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.orm import Session, selectinload
from inkwell.models.category import Category, post_categories
from inkwell.models.post import Post
from inkwell.models.user import User
from inkwell.rpc.errors import ErrorType, RPCError
from inkwell.utils.slug import POST_SLUG_MAX_LENGTH, POST_SLUG_MIN_LENGTH, ensure_unique_slug

def ensure_unique_post_slug(db: Session, source: str, exclude_id: int | None = None) -> str:
    return ensure_unique_slug(
        db,
        Post,
        source,
        exclude_id=exclude_id,
        max_length=POST_SLUG_MAX_LENGTH,
        min_length=POST_SLUG_MIN_LENGTH,
        prefix="post",
    )

def _post_query():
    return select(Post).options(selectinload(Post.categories))

def get_post(db: Session, post_id: int) -> Post | None:
    return db.execute(_post_query().where(Post.id == post_id)).scalar_one_or_none()

def get_post_by_slug(db: Session, slug: str) -> Post | None:
    return db.execute(_post_query().where(Post.slug == slug)).scalar_one_or_none()

def newest_first(query):
    return query.order_by(Post.created_at.desc(), Post.id.desc())

def list_posts(db: Session, *, author_id: int | None = None) -> list[Post]:
    query = _post_query()
    if author_id is not None:
        query = query.where(Post.author_id == author_id)
    return list(db.execute(newest_first(query)).unique().scalars())

def get_category_id(db: Session, slug: str) -> int | None:
    return db.execute(select(Category.id).where(Category.slug == slug)).scalar_one_or_none()

def post_ids_in_category(db: Session, category_id: int) -> list[int]:
    rows = db.execute(
        select(post_categories.c.post_id).where(post_categories.c.category_id == category_id)
    )
    return [row[0] for row in rows]

def posts_by_ids(db: Session, post_ids: list[int]) -> list[Post]:
    if not post_ids:
        return []
    query = newest_first(_post_query().where(Post.id.in_(post_ids)))
    return list(db.execute(query).unique().scalars())

def search_posts(
    db: Session,
    *,
    search: str | None = None,
    category_id: int | None = None,
    published: bool | None = None,
    page: int = 1,
    page_size: int = 9,
) -> tuple[list[Post], int, int]:
    """Return ``(posts, total, total_pages)`` for one page of matches."""
    conditions = []
    if search:
        term = search.lower()
        conditions.append(
            or_(
                func.lower(Post.title).contains(term, autoescape=True),
                func.lower(Post.excerpt).contains(term, autoescape=True),
                func.lower(Post.content).contains(term, autoescape=True),
            )
        )
    if category_id is not None:
        conditions.append(
            Post.id.in_(
                select(post_categories.c.post_id).where(post_categories.c.category_id == category_id)
            )
        )
    if published is not None:
        conditions.append(Post.published == published)

    total = db.execute(select(func.count(Post.id)).where(*conditions)).scalar_one()
    query = newest_first(_post_query().where(*conditions)).offset((page - 1) * page_size).limit(page_size)
    items = list(db.execute(query).unique().scalars())
    return items, total, math.ceil(total / page_size) if total else 0

def assert_categories_exist(db: Session, category_ids: list[int]):
    found = set(db.execute(select(Category.id).where(Category.id.in_(category_ids))).scalars())
    missing = [cid for cid in category_ids if cid not in found]
    if missing:
        raise RPCError(
            ErrorType.NOT_FOUND,
            "One or more categories do not exist",
            details={"missingCategoryIds": missing},
            code="BAD_REQUEST",
        )

def assert_author_exists(db: Session, author_id: int):
    if db.get(User, author_id) is None:
        raise RPCError(ErrorType.NOT_FOUND, "Author not found")

def replace_post_categories(db: Session, post_id: int, category_ids: list[int]):
    """Swap the post's whole category set for ``category_ids``.

    Runs inside the caller's transaction: the delete and the inserts commit
    together or not at all.
    """
    db.execute(delete(post_categories).where(post_categories.c.post_id == post_id))
    if category_ids:
        db.execute(
            insert(post_categories),
            [{"post_id": post_id, "category_id": cid} for cid in category_ids],
        )
