"""
Basic HTTP/1.1 client example using raw_http_core.

This example demonstrates how to use the HTTP11Client to make
GET, JSON and multipart requests and read the response bodies.
"""

import logging
import sys

from raw_http_core import (
    ClientOptions,
    HTTP11Client,
    HTTPCoreError,
    JsonStream,
    MultipartStream,
    Request,
    TextStream,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def simple_get_request(client: HTTP11Client) -> None:
    """Demonstrate a simple GET request."""
    logger.info("Making simple GET request...")
    
    request = Request.create("GET", "http://httpbin.org/get?source=raw_http_core")
    response = client.send_request(request)
    
    with response.body as body:
        content = body.get_contents()
    logger.info(f"Response status: {response.status_code} {response.reason_phrase}")
    logger.info(f"Response body length: {len(content)} bytes")


def post_json_request(client: HTTP11Client) -> None:
    """Demonstrate a POST request with a JSON body."""
    logger.info("Making POST request with JSON body...")
    
    request = Request.create(
        "POST",
        "http://httpbin.org/post",
        headers={"Accept": "application/json"},
        body=JsonStream({"message": "Hello from raw_http_core"}),
    )
    response = client.send_request(request)
    
    with response.body as body:
        logger.info(f"Response status: {response.status_code}")
        logger.info(f"Echoed payload: {body.get_contents()[:200]!r}")


def multipart_upload(client: HTTP11Client) -> None:
    """Demonstrate a multipart/form-data upload."""
    logger.info("Uploading multipart form...")
    
    body = MultipartStream({
        "title": "notes",
        "tags": ["http", "client"],
        "document": TextStream("line one\nline two\n", mime="text/markdown"),
    })
    request = Request.create("POST", "http://httpbin.org/post", body=body)
    response = client.send_request(request)
    
    with response.body as content:
        logger.info(f"Upload status: {response.status_code}, {len(content.get_contents())} bytes back")


def follow_redirects(client: HTTP11Client) -> None:
    """Demonstrate redirect following."""
    logger.info("Following redirects...")
    
    response = client.send_request(Request.create("GET", "http://httpbin.org/redirect/3"))
    response.body.close()
    logger.info(f"Final status after redirects: {response.status_code}")


def main() -> int:
    """Run all examples."""
    client = HTTP11Client(options=ClientOptions(timeout=10.0, max_redirects=5))
    
    try:
        simple_get_request(client)
        post_json_request(client)
        multipart_upload(client)
        follow_redirects(client)
    except HTTPCoreError as e:
        logger.error(f"Example failed: {e}")
        return 1
    
    logger.info("All examples completed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
