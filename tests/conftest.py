import pytest
from statsummoner.core.database import Database
from statsummoner.modules.follow_games.services.follow_service import FollowService


@pytest.fixture
async def db():
    database = Database(":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def follow_service(db):
    return FollowService(db)
