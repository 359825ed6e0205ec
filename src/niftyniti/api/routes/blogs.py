"""Blog post CRUD endpoints."""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from niftyniti.data.models import BlogPost

log = structlog.get_logger(__name__)

router = APIRouter()


class BlogCreate(BaseModel):
    title: str
    content: str
    slug: str | None = None
    excerpt: str | None = None
    read_time: int | None = None
    published: bool = False


class BlogUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    slug: str | None = None
    excerpt: str | None = None
    read_time: int | None = None
    published: bool | None = None


def _summary(post: BlogPost) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "read_time": post.read_time,
        "published_at": post.published_at,
    }


async def _parse(request: Request, model: type[BaseModel]) -> BaseModel | JSONResponse:
    try:
        return model.model_validate(await request.json())
    except (ValidationError, ValueError) as e:
        return JSONResponse(status_code=400, content={"error": str(e)})


@router.get("/blogs")
async def list_blogs(request: Request, skip: int = 0, take: int | None = None) -> JSONResponse:
    """Published posts, newest first, with pagination metadata."""
    if take is None:
        take = request.app.state.settings.api.blog_page_size
    if take < 1 or skip < 0:
        return JSONResponse(
            status_code=400,
            content={"error": "take must be at least 1 and skip must not be negative"},
        )
    store = request.app.state.blog_store
    posts, total = await store.list_published(skip=skip, take=take)
    return JSONResponse(
        content={
            "data": [_summary(p) for p in posts],
            "pagination": {
                "total": total,
                "skip": skip,
                "take": take,
                "has_more": skip + take < total,
            },
        }
    )


@router.post("/blogs")
async def create_blog(request: Request) -> JSONResponse:
    body = await _parse(request, BlogCreate)
    if isinstance(body, JSONResponse):
        return body
    post = await request.app.state.blog_store.create(**body.model_dump())
    return JSONResponse(status_code=201, content=asdict(post))


@router.get("/blogs/{slug}")
async def get_blog(request: Request, slug: str) -> JSONResponse:
    """Published post by slug; drafts are reported as not found."""
    post = await request.app.state.blog_store.get(slug)
    return JSONResponse(content=asdict(post))


@router.put("/blogs/{slug}")
async def update_blog(request: Request, slug: str) -> JSONResponse:
    body = await _parse(request, BlogUpdate)
    if isinstance(body, JSONResponse):
        return body
    fields = body.model_dump(exclude_unset=True)
    new_slug = fields.pop("slug", None)
    post = await request.app.state.blog_store.update(slug, new_slug=new_slug, **fields)
    log.info("blog_updated_via_api", slug=post.slug)
    return JSONResponse(content=asdict(post))


@router.delete("/blogs/{slug}")
async def delete_blog(request: Request, slug: str) -> Response:
    await request.app.state.blog_store.delete(slug)
    return Response(status_code=204)
