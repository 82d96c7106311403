import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import g


@pytest.fixture(scope="session")
def ordering_bed():
    # Initialized once in pytest_sessionstart; the bed only scopes each test.
    from ordering.domain import ordering

    return DomainFixture(ordering)


@pytest.fixture(autouse=True)
def _ctx(ordering_bed, collaborators):
    with ordering_bed.domain_context():
        for name, value in collaborators.items():
            setattr(g, name, value)
        yield
