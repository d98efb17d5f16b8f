# planner/services/family.py
from __future__ import annotations

from typing import Callable, Dict, List

from sqlmodel import Session, select

from models.family import Category, Helper, Member
from storage.db import get_session


class FamilyDirectory:
    """Read-only lookups for members, categories and helpers of a family."""

    def __init__(self, session_factory: Callable[[], Session] = get_session):
        self._session_factory = session_factory

    def reachable_members(self) -> List[Member]:
        with self._session_factory() as session:
            stmt = (
                select(Member)
                .where(Member.chat_address != None)  # noqa: E711
                .where(Member.chat_address != "")
                .order_by(Member.family_id.asc(), Member.created_at.asc())
            )
            return list(session.exec(stmt))


    def categories(self, family_id: str) -> Dict[str, Category]:
        with self._session_factory() as session:
            stmt = select(Category).where(Category.family_id == family_id)
            return {c.id: c for c in session.exec(stmt)}

    def member_names(self, family_id: str) -> Dict[str, str]:
        with self._session_factory() as session:
            stmt = select(Member).where(Member.family_id == family_id)
            return {m.id: m.display_name for m in session.exec(stmt)}

    def helper_names(self, family_id: str) -> Dict[str, str]:
        with self._session_factory() as session:
            stmt = select(Helper).where(Helper.family_id == family_id)
            return {h.id: h.name for h in session.exec(stmt)}


__all__ = ["FamilyDirectory"]
