"""Tests for duplicate detection by content hash and file name."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from docassist.core.rbac import DocumentCategory
from docassist.db.models.document import Document
from docassist.services.dedup_service import (
    MatchType,
    classify_match,
    compute_content_hash,
    find_duplicate,
)


def make_document(content_hash: str, file_name: str, minutes_ago: int = 0) -> Document:
    return Document(
        id=str(uuid.uuid4()),
        title=file_name,
        file_name=file_name,
        file_path=f"u/{file_name}",
        mime_type="text/plain",
        size_bytes=1,
        category=DocumentCategory.general,
        content_hash=content_hash,
        processed=True,
        uploaded_by="u",
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


def test_content_hash_is_sha256_hex() -> None:
    assert compute_content_hash(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert compute_content_hash(b"a") != compute_content_hash(b"b")


@pytest.mark.parametrize(
    "content_hash,file_name,expected",
    [
        ("h1", "a.txt", MatchType.both),
        ("h1", "b.txt", MatchType.hash),
        ("h2", "a.txt", MatchType.name),
        ("h2", "b.txt", None),
    ],
)
def test_classify_match(content_hash, file_name, expected) -> None:
    assert classify_match(make_document("h1", "a.txt"), content_hash, file_name) == expected


async def test_no_duplicate_in_empty_store(db_session) -> None:
    assert await find_duplicate(db_session, "h1", "a.txt") is None


async def test_duplicate_by_hash_with_different_name(db_session) -> None:
    existing = make_document("h1", "a.txt")
    db_session.add(existing)
    await db_session.commit()

    match = await find_duplicate(db_session, "h1", "renamed.txt")
    assert match is not None
    assert match.id == existing.id
    assert match.match_type == MatchType.hash
    assert match.to_dict() == {
        "id": existing.id,
        "title": "a.txt",
        "filePath": "u/a.txt",
        "matchType": "hash",
    }


async def test_oldest_match_wins(db_session) -> None:
    older = make_document("h1", "a.txt", minutes_ago=10)
    newer = make_document("h2", "a.txt", minutes_ago=1)
    db_session.add_all([newer, older])
    await db_session.commit()

    match = await find_duplicate(db_session, "h3", "a.txt")
    assert match.id == older.id
    assert match.match_type == MatchType.name
