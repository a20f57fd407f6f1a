import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from lk_documents.database import init_db
from lk_documents.dependencies import get_limiter, get_session_factory
from lk_documents.main import app
from lk_documents.models import Description, Product
from lk_documents.services.limiter import AdmissionLimiter, TimeUnit


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock(1000.0)


@pytest.fixture
def test_db(tmp_path):
    db_path = tmp_path / "db.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    init_db(db_path)

    app.dependency_overrides[get_session_factory] = lambda: TestSession
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def limiter():
    return AdmissionLimiter(request_limit=1000, warmup_period=0, time_unit=TimeUnit.SECONDS)


@pytest.fixture
def use_limiter(test_db):
    """Install a limiter for the app under test."""

    def install(lim: AdmissionLimiter) -> AdmissionLimiter:
        app.dependency_overrides[get_limiter] = lambda: lim
        return lim

    return install


@pytest.fixture
def client(test_db, limiter, use_limiter):
    use_limiter(limiter)
    return TestClient(app)


@pytest.fixture
def seed(test_db):
    """Insert unlinked description and product rows, returning their ids."""

    def _seed(descriptions: int = 0, products: int = 0) -> tuple[list[int], list[int]]:
        with test_db() as db:
            desc_rows = [Description(participant_inn=f"77{i:08d}") for i in range(descriptions)]
            prod_rows = [
                Product(uit_code=f"0104600000000{i:03d}", tnved_code="6403", owner_inn="123")
                for i in range(products)
            ]
            db.add_all(desc_rows + prod_rows)
            db.commit()
            return [d.id for d in desc_rows], [p.id for p in prod_rows]

    return _seed


@pytest.fixture
def document_payload():
    return {
        "status": "NEW",
        "doc_type": "LP_INTRODUCE_GOODS",
        "importRequest": False,
        "owner_inn": "123",
        "participant_inn": "456",
        "producer_inn": "789",
        "production_type": "X",
        "reg_number": "R1",
        "description": [],
        "products": [],
    }
