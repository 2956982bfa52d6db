from pydantic import BaseModel, EmailStr, Field, field_validator


def _not_blank(value: str | None) -> str | None:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


# --- Auth ---

class RegisterRequest(BaseModel):
    name: str = Field(max_length=150)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


# --- Category ---

class CategoryCreate(BaseModel):
    name: str = Field(max_length=100)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        return _not_blank(value)


# --- Comment ---

class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        return _not_blank(value)


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(max_length=300)
    content: str
    category: str = Field(description="Category id or slug.")
    excerpt: str | None = Field(None, max_length=500)
    featured_image: str | None = Field(None, max_length=500)
    tags: list[str] = []
    is_published: bool = False

    @field_validator("title", "content", "category")
    @classmethod
    def required_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class PostUpdate(BaseModel):
    """
    Partial update.  Only the allow-listed fields below can be changed; the
    author is never writable and unknown keys are ignored.
    """

    title: str | None = Field(None, max_length=300)
    content: str | None = None
    excerpt: str | None = Field(None, max_length=500)
    featured_image: str | None = Field(None, max_length=500)
    tags: list[str] | None = None
    is_published: bool | None = None
    category: str | None = Field(None, description="Category id or slug; ignored when unresolved.")

    @field_validator("title", "content", "tags", "is_published")
    @classmethod
    def reject_explicit_null(cls, value):
        # Validators only run on supplied values, so None here means null was sent.
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("title", "content")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        return _not_blank(value)


# --- Pagination ---

class PostPage(BaseModel):
    posts: list
    page: int
    limit: int
    total: int
