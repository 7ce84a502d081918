import pytest

from tests.fakes import FakeSurface, FakeSurfaceHost


@pytest.fixture
def fake_surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def fake_host(fake_surface: FakeSurface) -> FakeSurfaceHost:
    return FakeSurfaceHost(fake_surface)
