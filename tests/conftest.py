import pytest

from tests.fakes import FakeFirestore, run_fake_transaction


@pytest.fixture
def db(monkeypatch):
    import review.executor

    monkeypatch.setattr(review.executor, "run_transaction", run_fake_transaction)
    return FakeFirestore()
