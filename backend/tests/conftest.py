import os
import sys
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from journalflow.models.user import Actor  # noqa: E402
from tests.utils.actors import (  # noqa: E402
    AUTHOR_ID,
    EDITOR_ID,
    OTHER_AUTHOR_ID,
    REVIEWER_ID,
    SECOND_REVIEWER_ID,
    RecordingDispatcher,
)
from tests.utils.fake_supabase import FakeSupabase  # noqa: E402

# === 全局测试配置 ===
# 中文注释:
# 1. 服务层测试全部使用内存版 FakeSupabase，不依赖真实数据库/网络。
# 2. API 测试通过 app.dependency_overrides 注入同一个 FakeSupabase。
# 3. JWT 使用与后端相同的 secret 签发（SUPABASE_JWT_SECRET 或默认 mock secret）。

UNIQUE_CONSTRAINTS = {
    "profiles": [("id",)],
    "reviews": [("submission_id", "reviewer_id")],
    "publications": [("doi",), ("submission_id",)],
}


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase(unique=UNIQUE_CONSTRAINTS)
    db.seed(
        "profiles",
        {"id": AUTHOR_ID, "email": "author@example.com", "full_name": "Ada King Lovelace",
         "affiliation": "Analytical Society", "orcid_id": "0000-0002-1825-0097", "roles": ["author"]},
        {"id": OTHER_AUTHOR_ID, "email": "other@example.com", "full_name": "Grace Hopper",
         "affiliation": "Navy", "roles": ["author"]},
        {"id": REVIEWER_ID, "email": "reviewer@example.com", "full_name": "Alan Turing",
         "affiliation": "Bletchley", "roles": ["reviewer"]},
        {"id": SECOND_REVIEWER_ID, "email": "reviewer2@example.com", "full_name": "Kurt Godel",
         "affiliation": "IAS", "roles": ["reviewer", "author"]},
        {"id": EDITOR_ID, "email": "editor@example.com", "full_name": "Emmy Noether",
         "affiliation": "Göttingen", "roles": ["editor", "reviewer"]},
    )
    return db


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def author() -> Actor:
    return Actor.of(AUTHOR_ID, ["author"])


@pytest.fixture
def other_author() -> Actor:
    return Actor.of(OTHER_AUTHOR_ID, ["author"])


@pytest.fixture
def reviewer() -> Actor:
    return Actor.of(REVIEWER_ID, ["reviewer"])


@pytest.fixture
def second_reviewer() -> Actor:
    return Actor.of(SECOND_REVIEWER_ID, ["reviewer", "author"])


@pytest.fixture
def editor() -> Actor:
    return Actor.of(EDITOR_ID, ["editor", "reviewer"])


@pytest.fixture
def seed_submission(fake_db):
    """插入一条稿件记录，可覆盖任意字段（默认处于 submitted）。"""

    def _seed(**overrides):
        now = datetime.now(timezone.utc).isoformat()
        row = {
            "title": "On Computable Numbers",
            "abstract": "We study computable numbers.",
            "keywords": ["computability"],
            "co_authors": [{"name": "Charles Babbage", "affiliation": "Cambridge"}],
            "submitting_author_id": AUTHOR_ID,
            "file_path": None,
            "extracted_text": None,
            "status": "submitted",
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return fake_db.seed("submissions", row)[0]

    return _seed


@pytest.fixture
def app_with_fakes(fake_db, dispatcher):
    """
    构造注入 FakeSupabase 的 FastAPI app（dependency_overrides），返回 app 本身。
    """
    from fastapi import Depends

    from journalflow.api.v1 import common, internal
    from journalflow.core.auth_utils import get_current_profile, get_current_user
    from journalflow.core.scheduler import ReviewReminderSweep
    from journalflow.services.decision_service import DecisionService
    from journalflow.services.extraction_service import ExtractionService
    from journalflow.services.notification_service import NotificationService
    from journalflow.services.profile_service import ProfileService
    from journalflow.services.publication_service import PublicationService
    from journalflow.services.registrar_service import RegistrarService
    from journalflow.services.review_service import ReviewService
    from journalflow.services.search_service import SearchService
    from journalflow.services.settings_service import SettingsService
    from journalflow.services.storage_service import StorageService
    from journalflow.services.submission_service import SubmissionService
    from main import app

    async def _profile(current_user: dict = Depends(get_current_user)):
        return ProfileService(client=fake_db).ensure_profile(
            user_id=current_user["id"], email=current_user.get("email")
        )

    overrides = {
        get_current_profile: _profile,
        common.get_submission_service: lambda: SubmissionService(client=fake_db, dispatcher=dispatcher),
        common.get_review_service: lambda: ReviewService(client=fake_db, dispatcher=dispatcher),
        common.get_decision_service: lambda: DecisionService(client=fake_db, dispatcher=dispatcher),
        common.get_publication_service: lambda: PublicationService(client=fake_db, dispatcher=dispatcher),
        common.get_registrar_service: lambda: RegistrarService(client=fake_db),
        common.get_notification_service: lambda: NotificationService(client=fake_db),
        common.get_settings_service: lambda: SettingsService(client=fake_db),
        common.get_profile_service: lambda: ProfileService(client=fake_db),
        common.get_search_service: lambda: SearchService(client=fake_db),
        common.get_storage_service: lambda: StorageService(client=fake_db),
        common.get_extraction_service: lambda: ExtractionService(client=fake_db),
        internal.get_reminder_sweep: lambda: ReviewReminderSweep(client=fake_db, dispatcher=dispatcher),
    }
    app.dependency_overrides.update(overrides)
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app_with_fakes) -> AsyncGenerator:
    """
    提供一个注入了 FakeSupabase 的异步测试客户端
    """
    async with AsyncClient(transport=ASGITransport(app=app_with_fakes), base_url="http://testserver") as ac:
        yield ac
