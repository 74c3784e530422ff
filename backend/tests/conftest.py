"""
BountyExpo API - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable, Awaitable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_bountyexpo.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_LEVEL'] = 'WARNING'

from bountyexpo.main import app
from bountyexpo.core.database import Base, get_db
from bountyexpo.core.security import get_password_hash, create_access_token
from bountyexpo.models.user import User
from bountyexpo.services.message_service import message_service

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_bountyexpo.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def reset_typing_registry():
    """Typing state is process-wide; start each test clean"""
    message_service.typing._entries.clear()
    yield
    message_service.typing._entries.clear()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory for persisted users"""
    async def _make_user(**overrides) -> User:
        user = User(
            email=overrides.pop('email', fake.unique.email()),
            username=overrides.pop('username', fake.unique.user_name()[:40]),
            full_name=overrides.pop('full_name', fake.name()),
            hashed_password=get_password_hash(overrides.pop('password', 'testpassword123')),
            is_active=overrides.pop('is_active', True),
            is_verified=True,
            **overrides
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


def headers_for(user: User) -> dict:
    """Bearer headers for a user"""
    token = create_access_token({'sub': str(user.id), 'email': user.email})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def make_headers() -> Callable[[User], dict]:
    return headers_for


@pytest.fixture
async def test_user(make_user) -> User:
    """The poster in most scenarios"""
    return await make_user()


@pytest.fixture
async def hunter_user(make_user) -> User:
    """A second user who applies to bounties"""
    return await make_user()


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Generate authentication headers for test user"""
    return headers_for(test_user)


@pytest.fixture
def hunter_headers(hunter_user: User) -> dict:
    return headers_for(hunter_user)


@pytest.fixture
def test_user_data() -> dict:
    """Registration payload"""
    return {
        "email": fake.unique.email(),
        "password": "SecurePassword123!",
        "username": "@Hunter_" + fake.unique.lexify("????").lower(),
        "full_name": fake.name(),
    }


@pytest.fixture
def bounty_payload() -> dict:
    """A valid paid bounty"""
    return {
        "title": "Help me move a couch",
        "description": "Need two hands for about an hour, second floor walk-up",
        "amount": 2500,
        "is_for_honor": False,
        "location": "Austin, TX",
        "work_type": "in_person",
    }
