import threading

import pytest

from promjsonl.mock.fake_exporter import FakeExporterServer


@pytest.fixture
def fake_server():
    """Fake /metrics endpoint on a free port, serving in a background thread."""
    server = FakeExporterServer(("127.0.0.1", 0))
    host, port = server.server_address[:2]
    server.url = f"http://{host}:{port}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
