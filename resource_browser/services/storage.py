from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session


class SessionExecutor:
    """Runs rendered statements on a SQLAlchemy session, passing execution options through."""

    def __init__(self, session: Session):
        self.session = session

    def execute_all(self, stmt, options: dict[str, Any] | None = None) -> list[Any]:
        return list(self.session.execute(stmt, execution_options=options or {}).scalars().all())

    def execute_one(self, stmt, options: dict[str, Any] | None = None) -> Any | None:
        return self.session.execute(stmt, execution_options=options or {}).scalars().one_or_none()

    def execute_scalar(self, stmt, options: dict[str, Any] | None = None) -> Any:
        return self.session.execute(stmt, execution_options=options or {}).scalar_one()
