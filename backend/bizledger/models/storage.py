from __future__ import annotations

from ..extensions import db
from bizledger.time_utils import to_utc_z


class StoredDocument(db.Model):
    """
    One keyed document in the ledger's object store.

    WHY: The engine only needs whole-object read/write by key plus prefix
    listing. Every tenant, product, movement history, invoice and customer is
    a JSON body under a hierarchical key such as
    ``tenant/{tenant_id}/products/{sku}``.

    DESIGN:
    - key is the primary key; prefix listing is a LIKE scan on it
    - body holds raw bytes (UTF-8 JSON by convention, never parsed here)
    - version_id is an optimistic lock: a concurrent writer that loaded an
      older version fails with StaleDataError instead of silently overwriting
    """
    __tablename__ = "documents"

    key = db.Column(db.String(512), primary_key=True)
    body = db.Column(db.LargeBinary, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StoredDocument key={self.key!r} version={self.version_id}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "size": len(self.body or b""),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
