"""
Shared fixtures: a threaded local HTTP server to load test against, an
address that refuses connections, one that accepts but never answers and
raw socket servers for misbehaving peers.
"""

import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


class TargetHandler(BaseHTTPRequestHandler):
    """
    /status/<code> responds with <code>
    /slow/<secs>   sleeps before answering 200
    anything else  200 "ok"
    """

    def log_message(self, format, *args):
        pass

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _send(self, status: int, body: bytes = b"ok") -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _handle(self):
        body = self._read_body()
        path = self.path.split("?")[0]
        self.server.hits.append({
            "method": self.command,
            "path": path,
            "headers": dict(self.headers.items()),
            "body": body.decode("utf-8"),
        })

        if path.startswith("/status/"):
            self._send(int(path.rsplit("/", 1)[1]))
        elif path.startswith("/slow/"):
            time.sleep(float(path.rsplit("/", 1)[1]))
            self._send(200)
        else:
            self._send(200)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle
    do_PATCH = _handle


@pytest.fixture
def http_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), TargetHandler)
    server.daemon_threads = True
    server.hits = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address
    server.base_url = f"http://{host}:{port}"
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def refused_url():
    """URL of a local port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}/"


@pytest.fixture
def silent_url():
    """URL of a socket that accepts connections but never responds."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(64)
    port = sock.getsockname()[1]
    yield f"http://127.0.0.1:{port}/"
    sock.close()


@pytest.fixture
def raw_server():
    """
    Start socket servers that read a request and hand the connection to
    reply(conn, stop). Returns the server URL.
    """
    started = []

    def start(reply):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        sock.listen(8)
        stop = threading.Event()

        def serve():
            while not stop.is_set():
                try:
                    conn, _ = sock.accept()
                except OSError:
                    return
                with conn:
                    try:
                        conn.recv(65536)
                        reply(conn, stop)
                    except OSError:
                        pass

        threading.Thread(target=serve, daemon=True).start()
        started.append((sock, stop))
        return f"http://127.0.0.1:{sock.getsockname()[1]}/"

    yield start
    for sock, stop in started:
        stop.set()
        sock.close()
