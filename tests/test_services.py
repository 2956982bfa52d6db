"""
Direct service-layer tests: exercises the building blocks without HTTP.

These call helpers and service functions with a database session, covering
slug derivation, id-or-slug resolution, the authorization rule and the
uniqueness fallbacks that are hard to reach deterministically through the
API.
"""
import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import Conflict, DuplicateName, DuplicateSlug, Forbidden, ValidationFailed
from blog_api.models import ROLE_ADMIN, Category, Post, User, new_object_id
from blog_api.schemas import CategoryCreate, PostCreate
from blog_api.services import category_service, post_service
from blog_api.services.permissions import authorize, can_modify
from blog_api.services.post_service import normalize_tags
from blog_api.services.resolver import looks_like_object_id, resolve
from blog_api.services.slugs import assign_slug, slugify


# ---------------------------------------------------------------------------
# slugs
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("text, expected", [
    ("Hello, World!  Foo", "hello-world-foo"),
    ("  Padded Title  ", "padded-title"),
    ("snake_case stays", "snake_case-stays"),
    ("Tabs\tand\nnewlines", "tabsandnewlines"),
    ("a\tb", "ab"),
    ("line one\r\nline two", "line-oneline-two"),
    ("Café au lait", "caf-au-lait"),
    ("!!!", ""),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_assign_slug_on_new_instance():
    category = Category()
    assert assign_slug(category, "name", "Machine Learning") is True
    assert category.name == "Machine Learning"
    assert category.slug == "machine-learning"


def test_assign_slug_rejects_value_without_slug_characters():
    with pytest.raises(ValidationFailed) as exc_info:
        assign_slug(Post(), "title", "???")
    assert exc_info.value.message == "Title must contain at least one letter or digit"


@pytest.mark.asyncio
async def test_assign_slug_only_when_source_changes(db_session: AsyncSession):
    category = Category()
    assign_slug(category, "name", "Original")
    db_session.add(category)
    await db_session.flush()

    # Simulate a hand-edited slug; an unchanged name must leave it alone.
    category.slug = "custom-slug"
    assert assign_slug(category, "name", "Original") is False
    assert category.slug == "custom-slug"

    assert assign_slug(category, "name", "Renamed") is True
    assert category.slug == "renamed"


# ---------------------------------------------------------------------------
# resolver
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    ("0123456789abcdef01234567", True),
    ("0123456789ABCDEF01234567", True),
    ("0123456789abcdef0123456", False),
    ("0123456789abcdef012345678", False),
    ("0123456789abcdef0123456g", False),
    ("hello-world", False),
])
def test_looks_like_object_id(value, expected):
    assert looks_like_object_id(value) is expected


async def _add_category(db: AsyncSession, name: str) -> Category:
    category = Category()
    assign_slug(category, "name", name)
    db.add(category)
    await db.flush()
    return category


@pytest.mark.asyncio
async def test_resolve_by_id_and_by_slug(db_session: AsyncSession):
    category = await _add_category(db_session, "Science")

    assert (await resolve(db_session, Category, category.id)) is category
    assert (await resolve(db_session, Category, "science")) is category


@pytest.mark.asyncio
async def test_resolve_id_shaped_slug_falls_back_to_slug(db_session: AsyncSession):
    category = await _add_category(db_session, "abcdefabcdefabcdefabcdef")
    assert category.id != category.slug

    assert (await resolve(db_session, Category, "abcdefabcdefabcdefabcdef")) is category


@pytest.mark.asyncio
async def test_resolve_unknown_returns_none(db_session: AsyncSession):
    assert await resolve(db_session, Category, "missing") is None
    assert await resolve(db_session, Category, new_object_id()) is None
    assert await resolve(db_session, Category, "") is None
    assert await resolve(db_session, Category, None) is None


# ---------------------------------------------------------------------------
# permissions
# ---------------------------------------------------------------------------

def _user(role: str = "member") -> User:
    return User(id=new_object_id(), name="U", email="u@example.com", password_hash="x", role=role)


def test_owner_and_admin_can_modify():
    owner = _user()
    admin = _user(ROLE_ADMIN)
    stranger = _user()
    post = Post(id=new_object_id(), author_id=owner.id)

    assert can_modify(owner, post)
    assert can_modify(admin, post)
    assert not can_modify(stranger, post)

    authorize(owner, post)
    authorize(admin, post)
    with pytest.raises(Forbidden):
        authorize(stranger, post)


# ---------------------------------------------------------------------------
# category_service
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_category_race_loser_gets_conflict(db_session: AsyncSession, monkeypatch):
    """Both creators pass the name pre-check; the unique indexes decide."""
    await category_service.create_category(db_session, CategoryCreate(name="Tech"))

    async def _nothing_found(db, name):
        return None

    monkeypatch.setattr(category_service, "_find_by_name", _nothing_found)

    # Either index may report first; both map onto a 400 conflict.
    with pytest.raises(Conflict) as exc_info:
        await category_service.create_category(db_session, CategoryCreate(name="Tech"))
    assert isinstance(exc_info.value, (DuplicateName, DuplicateSlug))
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_create_category_slug_collision_is_duplicate_slug(db_session: AsyncSession):
    await category_service.create_category(db_session, CategoryCreate(name="Dev Ops"))

    with pytest.raises(DuplicateSlug) as exc_info:
        await category_service.create_category(db_session, CategoryCreate(name="dev ops"))
    assert exc_info.value.message == "Category slug already exists"


@pytest.mark.asyncio
async def test_get_categories_without_cache(db_session: AsyncSession):
    await category_service.create_category(db_session, CategoryCreate(name="Beta"))
    await category_service.create_category(db_session, CategoryCreate(name="Alpha", description="First"))

    categories = await category_service.get_categories(db_session)
    assert [c["name"] for c in categories] == ["Alpha", "Beta"]
    assert categories[0]["description"] == "First"


# ---------------------------------------------------------------------------
# post_service helpers
# ---------------------------------------------------------------------------

def test_normalize_tags():
    assert normalize_tags([" python", "python ", "", "  ", "api", "Python"]) == ["python", "api", "Python"]
    assert normalize_tags([]) == []


async def _add_author_and_category(db: AsyncSession) -> tuple[User, Category]:
    author = User(name="Writer", email="writer@example.com", password_hash="x")
    db.add(author)
    category = await _add_category(db, "General")
    return author, category


@pytest.mark.asyncio
async def test_create_post_race_loser_gets_duplicate_slug(db_session: AsyncSession, monkeypatch):
    """Both creators pass the slug pre-check; the unique index on posts.slug decides."""
    author, category = await _add_author_and_category(db_session)
    first = await post_service.create_post(
        db_session, author, PostCreate(title="Same", content="one", category=category.id)
    )
    assert first["slug"] == "same"

    async def _never_taken(db, slug, exclude_id=None):
        return False

    monkeypatch.setattr(post_service, "_slug_taken", _never_taken)

    with pytest.raises(DuplicateSlug) as exc_info:
        await post_service.create_post(
            db_session, author, PostCreate(title="same!", content="two", category=category.id)
        )
    assert exc_info.value.message == "A post with this title already exists"
    assert exc_info.value.status_code == 400


def test_search_document_matches_text_index_expression():
    compiled = post_service.search_document().compile(dialect=postgresql.dialect())
    sql = str(compiled)
    assert sql == "to_tsvector('english', posts.title || ' ' || posts.content)"
    # A bound separator or config would keep the planner off the GIN index.
    assert compiled.params == {}
