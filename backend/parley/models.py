# backend/parley/models.py
from sqlalchemy import JSON, Float, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=convention)


class ConversationSnapshot(Base):
    """
    Last autosaved state of one active conversation.

    The table is rewritten as a whole on each autosave, so it mirrors the
    manager's table at that moment.
    """
    __tablename__ = "conversation_snapshots"

    conversation_id: Mapped[str] = mapped_column(String, primary_key=True)
    player_id: Mapped[str] = mapped_column(String, index=True)
    provider_id: Mapped[str] = mapped_column(String)

    # ConversationState.to_dict()
    data: Mapped[dict] = mapped_column(JSON, default=dict)

    # Unix timestamp of the save
    saved_at: Mapped[float] = mapped_column(Float)
