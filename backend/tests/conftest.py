"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from studybot.config import Settings
from studybot.context import AppContext
from studybot.db.models import ClassSubject, User
from studybot.db.session import Database
from studybot.main import create_app
from studybot.scheduling.scheduler import JobScheduler
from studybot.scheduling.state import JobStateStore

VN_TZ = ZoneInfo("Asia/Ho_Chi_Minh")

# Monday 2025-07-07 08:00 local time
FIXED_NOW = datetime(2025, 7, 7, 8, 0, tzinfo=VN_TZ)

EDITOR_ID = "editor-1"
WEBHOOK_SECRET = "hook-secret"
ADMIN_KEY = "admin-key"


class FakeClock:
    """Settable clock; tests move `now` to fire jobs at later times."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeBot:
    """In-memory stand-in for the Zalo bot client."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.typing: list[str] = []
        self.fail_for: set[str] = set()
        self.raise_for: set[str] = set()
        self.webhook: str | None = None

    async def send_message(self, chat_id: str, text: str) -> bool:
        if chat_id in self.raise_for:
            raise RuntimeError("connection reset")
        if chat_id in self.fail_for or not text:
            return False
        self.sent.append((chat_id, text))
        return True

    async def send_typing_action(self, chat_id: str) -> bool:
        self.typing.append(chat_id)
        return True

    async def set_webhook(self, url: str, secret_token: str) -> bool:
        self.webhook = url
        return True

    async def delete_webhook(self) -> bool:
        self.webhook = None
        return True

    async def aclose(self) -> None:
        pass

    def texts_for(self, chat_id: str) -> list[str]:
        return [text for target, text in self.sent if target == chat_id]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        webhook_secret=WEBHOOK_SECRET,
        admin_authentication_key=ADMIN_KEY,
        assignment_editors=[EDITOR_ID],
        job_state_file=str(tmp_path / "job_state.json"),
        typing_delay_seconds=0,
        shutdown_drain_seconds=0.5,
        broadcast_pause_seconds=0,
    )


@pytest.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def fake_bot() -> FakeBot:
    return FakeBot()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(settings) -> JobScheduler:
    return JobScheduler(settings.timezone, JobStateStore(settings.job_state_file))


@pytest.fixture
def context(settings, database, fake_bot, scheduler, clock) -> AppContext:
    return AppContext.build(
        settings,
        database=database,
        bot=fake_bot,
        scheduler=scheduler,
        clock=clock,
    )


@pytest.fixture
async def classes(database, settings) -> dict[str, ClassSubject]:
    """
    Timetable for the configured term plus one class from another term.

    MA004 and IT003 are main classes on Monday (day 1); IE105 is an elective
    on Tuesday; OLD01 is a main class of a past term.
    """
    rows = {
        "MA004": ClassSubject(
            subject_id="MA004.F13.LT.CNTT", name="Cấu trúc rời rạc", teacher="Nguyễn Văn A",
            credits=4, day_of_week=1, start_time="10:00", end_time="11:30",
            year=settings.academic_year, semester=settings.semester, is_main=True,
        ),
        "IT003": ClassSubject(
            subject_id="IT003.F12.CNTT", name="Cấu trúc dữ liệu và giải thuật", teacher="Trần Thị B",
            credits=4, day_of_week=1, start_time="14:00", end_time="16:30",
            year=settings.academic_year, semester=settings.semester, is_main=True,
        ),
        "IE105": ClassSubject(
            subject_id="IE105.F11", name="Nhập môn bảo đảm an ninh thông tin", teacher="Lê C",
            credits=3, day_of_week=2, start_time="07:30", end_time="09:45",
            year=settings.academic_year, semester=settings.semester, is_main=False,
        ),
        "OLD01": ClassSubject(
            subject_id="OLD01.F10", name="Môn cũ", teacher="Phạm D",
            credits=2, day_of_week=1, start_time="09:00", end_time="10:00",
            year="2024-2025", semester=1, is_main=True,
        ),
    }
    async with database.session() as db:
        db.add_all(rows.values())
    return rows


async def make_user(database: Database, external_id: str, *, active=True, notify=True, name="Sinh viên") -> User:
    async with database.session() as db:
        user = User(external_id=external_id, name=name, active=active, notify=notify)
        db.add(user)
    return user


@pytest.fixture
async def client(context) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""
    app = create_app(context=context)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
