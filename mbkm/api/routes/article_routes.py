"""
Article Routes

GET /articles - List articles (public)
GET /articles/{article_id} - Article detail (public, counts a view)
POST /articles - Create article
PUT /articles/{article_id} - Update article
DELETE /articles/{article_id} - Delete article
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import text

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset
from mbkm.core.auth import get_current_user
from mbkm.core.errors import NotFoundError
from mbkm.schemas.schemas import ArticleCreate, ArticleUpdate, MessageResponse

router = APIRouter(prefix="/articles", tags=["Articles"])


def _get_article(db, article_id: int) -> dict:
    article = fetch_one(db, "SELECT * FROM articles WHERE id = :id", {"id": article_id})
    if not article:
        raise NotFoundError("Article not found")
    return article


@router.get("")
async def list_articles(page: int = Query(1, ge=1), per_page: int = Query(10, ge=1, le=100)):
    with get_db_session() as db:
        count = db.execute(text("SELECT COUNT(*) FROM articles")).scalar()
        rows = fetch_all(
            db, "SELECT * FROM articles ORDER BY created_at DESC, id DESC LIMIT :limit OFFSET :offset",
            {"limit": per_page, "offset": page_offset(page, per_page)}
        )
    return {"data": rows, "count": count}


@router.get("/{article_id}")
async def get_article(article_id: int):
    """Article detail. Each read increments its view counter."""
    with get_db_session() as db:
        result = db.execute(
            text("UPDATE articles SET views = COALESCE(views, 0) + 1 WHERE id = :id"),
            {"id": article_id}
        )
        if result.rowcount == 0:
            raise NotFoundError("Article not found")
        article = _get_article(db, article_id)
    return {"data": article}


@router.post("", status_code=201)
async def create_article(article: ArticleCreate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(
            text("INSERT INTO articles (title, content, views) VALUES (:title, :content, 0) RETURNING id"),
            article.model_dump()
        )
        data = _get_article(db, result.fetchone()[0])
    return {"data": data}


@router.put("/{article_id}")
async def update_article(article_id: int, update: ArticleUpdate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _get_article(db, article_id)

        updates = []
        params = {"id": article_id}
        for field, value in update.model_dump(exclude_none=True).items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE articles SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        data = _get_article(db, article_id)
    return {"data": data}


@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(article_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM articles WHERE id = :id"), {"id": article_id})
        if result.rowcount == 0:
            raise NotFoundError("Article not found")
    return MessageResponse(message="Data berhasil dihapus")
