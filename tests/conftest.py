import pytest

from tableslot.config import ServiceConfig
from tableslot.models import Sector
from tests.factories import make_table


@pytest.fixture
def config() -> ServiceConfig:
    """Default service day: 11:00 to midnight in 15-minute slots."""
    return ServiceConfig()


@pytest.fixture
def sectors() -> list[Sector]:
    return [
        Sector(id="main", name="Main Hall"),
        Sector(id="terrace", name="Terrace"),
    ]


@pytest.fixture
def tables():
    """A small floor: two tables inside, one on the terrace."""
    return [
        make_table("T1", 2, 4, sector="main", sort_order=0),
        make_table("T2", 4, 6, sector="main", sort_order=1),
        make_table("T3", 2, 2, sector="terrace", sort_order=2),
    ]
