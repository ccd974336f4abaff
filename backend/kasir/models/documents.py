from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class Document(db.Model):
    """
    Schemaless document row backing the document-store repository.

    `collection` plays the role of a document-store collection name
    ("transactions", "settlements", "products"); `data` holds the document
    body as-is.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.Index("ix_documents_collection_store", "collection", "store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(64), nullable=False)
    store_id = db.Column(db.String(64), nullable=False)
    data = db.Column(db.JSON, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
