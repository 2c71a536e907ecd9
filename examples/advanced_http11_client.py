"""
Advanced HTTP/1.1 client example using raw_http_core.

Shows configuration from a camelCase mapping, TLS options, streaming
a response body to a file and handling the library's error types.
"""

import logging
import sys
import tempfile

from raw_http_core import (
    ClientOptions,
    HTTP11Client,
    NetworkError,
    Request,
    RequestError,
    Response,
)

logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def download(client: HTTP11Client, url: str) -> str:
    """Stream a response body to a temporary file and return its path."""
    response = client.send_request(Request.create("GET", url))
    
    with tempfile.NamedTemporaryFile(delete=False, suffix=".bin") as f, response.body as body:
        for chunk in body:
            f.write(chunk)
    
    logger.info(f"Downloaded {url} ({response.get_header_line('Content-Type')}) to {f.name}")
    return f.name


def main() -> int:
    options = ClientOptions.from_mapping({
        "followLocation": True,
        "maxRedirects": 3,
        "timeout": 5.0,
        "ssl": {"verifyPeer": True, "alpnProtocols": ["http/1.1"]},
    })
    prototype = Response.create(200, headers={"X-Client": "advanced-example"})
    client = HTTP11Client(response=prototype, options=options)
    
    try:
        download(client, "https://httpbin.org/bytes/2048")
        download(client, "http://httpbin.org/redirect-to?url=/image/png")
    except NetworkError as e:
        logger.error(f"Network failure: {e} (request: {e.request and e.request.uri})")
        return 1
    except RequestError as e:
        logger.error(f"Request failed: {e}")
        return 1
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
