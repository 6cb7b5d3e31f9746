import threading

import pytest
from werkzeug.serving import make_server

import app as cpm_app
from services.network import ActivityNetwork


def pytest_addoption(parser):
    parser.addoption("--e2e", action="store_true", default=False,
                     help="run browser tests against a live server")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --e2e")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture
def client():
    cpm_app.app.config["TESTING"] = True
    cpm_app.PROJECT["network"] = ActivityNetwork()
    cpm_app.PROJECT["issues"] = []
    with cpm_app.app.test_client() as c:
        yield c


@pytest.fixture(scope="session")
def live_url():
    server = make_server("127.0.0.1", 0, cpm_app.app)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}"
    server.shutdown()
    thread.join()
