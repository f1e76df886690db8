
from sqlalchemy import delete as sql_delete
from inkwell.logging_config import get_logger
from inkwell.models.post import Post
from inkwell.posts import service
from inkwell.rpc.errors import ErrorType, RPCError, unauthorized
from inkwell.rpc.middleware import require_owner
from inkwell.rpc.procedures import RPCRouter
from inkwell.schemas.common import Id, SlugIn
from inkwell.schemas.post import (
    AssignCategoriesIn,
    AuthorPostsIn,
    CategoryFilterIn,
    PostCreate,
    PostOut,
    PostPage,
    PostSearchIn,
    PostUpdate,
)

logger = get_logger(__name__)

router = RPCRouter("posts")

def _load_target(ctx, body):
    if isinstance(body, int):
        post_id = body
    elif isinstance(body, AssignCategoriesIn):
        post_id = body.post_id
    else:
        post_id = body.id
    return ctx.db.get(Post, post_id)

owns_post = require_owner(_load_target, lambda post: post.author_id, entity="Post")

def _out(post: Post) -> PostOut:
    return PostOut.model_validate(post)

def _reload(ctx, post_id: int) -> PostOut:
    post = service.get_post(ctx.db, post_id)
    if post is None:
        raise RPCError(ErrorType.INTERNAL_SERVER_ERROR, "Unable to load post")
    return _out(post)

@router.query("list")
def list_posts(ctx, _):
    return [_out(p) for p in service.list_posts(ctx.db)]

@router.query("search", input=PostSearchIn)
def search_posts(ctx, body: PostSearchIn):
    category_id = None
    if body.category_slug:
        category_id = service.get_category_id(ctx.db, body.category_slug)
        if category_id is None:
            return PostPage(items=[], total=0, page=body.page, page_size=body.page_size, total_pages=0)

    items, total, total_pages = service.search_posts(
        ctx.db,
        search=body.search,
        category_id=category_id,
        published=body.published,
        page=body.page,
        page_size=body.page_size,
    )
    return PostPage(
        items=[_out(p) for p in items],
        total=total,
        page=body.page,
        page_size=body.page_size,
        total_pages=total_pages,
    )

@router.query("listByAuthor", input=AuthorPostsIn)
def list_by_author(ctx, body: AuthorPostsIn):
    return [_out(p) for p in service.list_posts(ctx.db, author_id=body.author_id)]

@router.query("getById", input=Id)
def get_by_id(ctx, post_id: int):
    post = service.get_post(ctx.db, post_id)
    if post is None:
        raise RPCError(ErrorType.NOT_FOUND, "Post not found")
    return _out(post)

@router.query("getBySlug", input=SlugIn)
def get_by_slug(ctx, body: SlugIn):
    post = service.get_post_by_slug(ctx.db, body.slug)
    if post is None:
        raise RPCError(ErrorType.NOT_FOUND, "Post not found")
    return _out(post)

@router.query("filterByCategory", input=CategoryFilterIn)
def filter_by_category(ctx, body: CategoryFilterIn):
    category_id = service.get_category_id(ctx.db, body.category_slug)
    if category_id is None:
        raise RPCError(ErrorType.NOT_FOUND, "Category not found")
    post_ids = service.post_ids_in_category(ctx.db, category_id)
    return [_out(p) for p in service.posts_by_ids(ctx.db, post_ids)]

@router.mutation("create", input=PostCreate, log_input=True)
def create_post(ctx, body: PostCreate):
    author_id = body.author_id or (ctx.user.id if ctx.user else None)
    if author_id is None:
        raise unauthorized("An author is required to create a post")

    service.assert_author_exists(ctx.db, author_id)
    service.assert_categories_exist(ctx.db, body.category_ids)

    slug = service.ensure_unique_post_slug(ctx.db, body.slug or body.title)
    post = Post(
        title=body.title,
        slug=slug,
        content=body.content,
        excerpt=body.excerpt,
        cover_image=body.cover_image,
        published=body.published,
        author_id=author_id,
    )
    ctx.db.add(post)
    ctx.db.flush()
    service.replace_post_categories(ctx.db, post.id, body.category_ids)
    ctx.db.commit()

    logger.info("post_created", post_id=post.id, slug=slug, author_id=author_id)
    return _reload(ctx, post.id)

@router.mutation("update", input=PostUpdate, use=[owns_post], log_input=True)
def update_post(ctx, body: PostUpdate):
    post = ctx.db.get(Post, body.id)
    changes = body.changes()
    category_ids = changes.pop("category_ids", None)

    if "author_id" in changes:
        service.assert_author_exists(ctx.db, changes["author_id"])
    if category_ids is not None:
        service.assert_categories_exist(ctx.db, category_ids)

    explicit_slug = changes.pop("slug", None)
    if explicit_slug:
        post.slug = service.ensure_unique_post_slug(ctx.db, explicit_slug, exclude_id=post.id)
    elif "title" in changes and changes["title"] != post.title:
        post.slug = service.ensure_unique_post_slug(ctx.db, changes["title"], exclude_id=post.id)

    for field, value in changes.items():
        setattr(post, field, value)

    if category_ids is not None:
        service.replace_post_categories(ctx.db, post.id, category_ids)
    ctx.db.commit()

    return _reload(ctx, post.id)

@router.mutation("assignCategories", input=AssignCategoriesIn, use=[owns_post])
def assign_categories(ctx, body: AssignCategoriesIn):
    service.assert_categories_exist(ctx.db, body.category_ids)
    service.replace_post_categories(ctx.db, body.post_id, body.category_ids)
    ctx.db.commit()
    return _reload(ctx, body.post_id)

@router.mutation("delete", input=Id, use=[owns_post], log_input=True)
def delete_post(ctx, post_id: int):
    # link rows go with the post through ON DELETE CASCADE
    result = ctx.db.execute(sql_delete(Post).where(Post.id == post_id))
    if result.rowcount == 0:
        raise RPCError(ErrorType.NOT_FOUND, "Post not found")
    ctx.db.commit()
    logger.info("post_deleted", post_id=post_id)
    return {"id": post_id}
