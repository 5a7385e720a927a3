from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from typing import Optional
from datetime import datetime, timezone
import logging

from models import MemberFields, MemberRecord, RecordSource

logger = logging.getLogger(__name__)


class MemberStore:
    """
    Database copy of member records, keyed by user id.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_member(self, user_id: str) -> Optional[MemberRecord]:
        query = text("""
            SELECT user_id, email, tel, topic, keyword, title, social_link
            FROM public.member_profiles
            WHERE user_id = :user_id
        """)
        result = await self.db.execute(query, {"user_id": str(user_id)})
        row = result.fetchone()

        if not row:
            return None

        return MemberRecord(
            email=row.email,
            tel=row.tel or "",
            topic=row.topic or "",
            keyword=row.keyword or "",
            title=row.title or "",
            social_link=row.social_link or "",
            source=RecordSource.database
        )

    async def create_skeleton(self, user_id: str, email: str, commit: bool = True) -> None:
        """Insert an empty profile for a newly registered member"""
        await self.db.execute(text("""
            INSERT INTO public.member_profiles (user_id, email, tel, topic, keyword, title, social_link, created_at, updated_at)
            VALUES (:user_id, :email, '', '', '', '', '', :now, :now)
            ON CONFLICT (user_id) DO NOTHING
        """), {"user_id": str(user_id), "email": email, "now": datetime.now(timezone.utc)})
        if commit:
            await self.db.commit()

    async def update_member(self, user_id: str, email: str, fields: MemberFields) -> None:
        """Upsert the editable fields; last write wins"""
        params = {
            "user_id": str(user_id),
            "email": email,
            "now": datetime.now(timezone.utc),
            **fields.model_dump(),
        }
        await self.db.execute(text("""
            INSERT INTO public.member_profiles (user_id, email, tel, topic, keyword, title, social_link, created_at, updated_at)
            VALUES (:user_id, :email, :tel, :topic, :keyword, :title, :social_link, :now, :now)
            ON CONFLICT (user_id) DO UPDATE SET
                email = EXCLUDED.email,
                tel = EXCLUDED.tel,
                topic = EXCLUDED.topic,
                keyword = EXCLUDED.keyword,
                title = EXCLUDED.title,
                social_link = EXCLUDED.social_link,
                updated_at = EXCLUDED.updated_at
        """), params)
        await self.db.commit()
        logger.info(f"Member profile saved for user {user_id}")
