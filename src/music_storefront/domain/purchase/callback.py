"""
One-shot local listener for the checkout redirect.

The hosted checkout redirects back to the configured success URL. When that
URL points at localhost, the CLI can catch the redirect here and route it.
"""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional

from loguru import logger

from .routes import View, select_view


def wait_for_redirect(port: int, timeout: float = 900.0, host: str = "localhost") -> Optional[str]:
    """Block until one request arrives, returning its path (None on timeout).

    Raises:
        OSError: The port could not be bound
    """
    result = {"path": None}

    class RedirectHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            result["path"] = self.path

            self.send_response(200)
            self.send_header("Content-type", "text/html")
            self.end_headers()

            if select_view(self.path) is View.VERIFICATION:
                html = """
                <html><body style="font-family: sans-serif; text-align: center; padding: 50px;">
                <h1 style="color: #f97316;">Payment received</h1>
                <p>You can close this window and return to your terminal.</p>
                </body></html>
                """
            else:
                html = """
                <html><body style="font-family: sans-serif; text-align: center; padding: 50px;">
                <h1>Checkout closed</h1>
                <p>Return to your terminal to continue browsing.</p>
                </body></html>
                """
            self.wfile.write(html.encode())

        def log_message(self, format, *args):
            pass

    server = HTTPServer((host, port), RedirectHandler)
    server.timeout = timeout
    try:
        server_thread = threading.Thread(target=server.handle_request)
        server_thread.daemon = True
        server_thread.start()
        logger.debug(f"Redirect listener on {host}:{port}")
        server_thread.join(timeout=timeout)
    finally:
        server.server_close()

    if result["path"] is None:
        logger.warning(f"No checkout redirect received after {timeout:.0f} seconds")
    return result["path"]
