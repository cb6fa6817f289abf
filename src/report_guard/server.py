"""HTTP sidecar server for report-guard.

A thin adapter over ReportPipeline for callers that are not written in
Python (the report editor, the add-in backend).

Endpoints:
    POST /process     Full pipeline: {text, options, allowContentChanges}
    POST /redact      {text} -> {text, placeholders}
    POST /reinsert    {text, placeholders} -> {text}
    POST /guard       {original, candidate} -> guard report
    GET  /health      Health check

All endpoints expect/return JSON.
"""

from __future__ import annotations
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .config import pipeline_from_env
from .errors import RewriteProviderError, ValidationError
from .guard import guard_diff
from .pipeline import ReportPipeline
from .reinserter import reinsert
from .types import Placeholder, ProcessingRequest

logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("REPORT_GUARD_PORT", "18792"))


class GuardHandler(BaseHTTPRequestHandler):
    """HTTP request handler; the pipeline is attached to the server."""

    server: "GuardServer"

    def _read_json(self) -> Any:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length).decode("utf-8")
        try:
            return json.loads(body) if body else {}
        except json.JSONDecodeError as e:
            raise ValidationError(f"body is not valid JSON: {e}") from e

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        if self.path == "/health":
            pipeline = self.server.pipeline
            self._respond(200, {
                "status": "ok",
                "provider": getattr(pipeline.provider, "name", type(pipeline.provider).__name__),
                "passes": list(pipeline.redactor.passes),
                "language": pipeline.vocabulary.language,
            })
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        pipeline = self.server.pipeline
        try:
            body = self._read_json()
            if not isinstance(body, dict):
                raise ValidationError("request body must be an object")

            if self.path == "/process":
                outcome = pipeline.process(ProcessingRequest.from_dict(body))
                self._respond(200, outcome.to_dict())

            elif self.path == "/redact":
                result = pipeline.redactor.redact(body.get("text"))
                self._respond(200, {
                    "text": result.text,
                    "placeholders": [p.to_dict() for p in result.ledger],
                })

            elif self.path == "/reinsert":
                placeholders = body.get("placeholders", [])
                if not isinstance(placeholders, list):
                    raise ValidationError("placeholders must be a list")
                ledger = tuple(Placeholder.from_dict(p) for p in placeholders)
                self._respond(200, {"text": reinsert(str(body.get("text", "")), ledger)})

            elif self.path == "/guard":
                original, candidate = body.get("original"), body.get("candidate")
                if not isinstance(original, str) or not isinstance(candidate, str):
                    raise ValidationError("original and candidate must be strings")
                report = guard_diff(original, candidate, pipeline.vocabulary)
                self._respond(200, report.to_dict())

            else:
                self._respond(404, {"error": "not found"})

        except ValidationError as e:
            logger.info("bad request on %s: %s", self.path, e)
            self._respond(400, {"error": "Bad Request", "details": str(e)})
        except RewriteProviderError as e:
            self._respond(502, {"error": "Rewrite provider failed", "details": str(e), "retryable": True})
        except Exception as e:
            logger.exception("internal error on %s", self.path)
            self._respond(500, {"error": "Internal error", "details": str(e)})


class GuardServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], pipeline: ReportPipeline) -> None:
        super().__init__(address, GuardHandler)
        self.pipeline = pipeline


def serve(port: int = DEFAULT_PORT, pipeline: ReportPipeline | None = None) -> None:
    """Start the report-guard HTTP sidecar on localhost."""
    pipeline = pipeline or pipeline_from_env()
    server = GuardServer(("127.0.0.1", port), pipeline)
    logger.info(
        "report-guard sidecar listening on http://127.0.0.1:%d (provider %s, passes %s)",
        port, getattr(pipeline.provider, "name", "?"), ",".join(pipeline.redactor.passes),
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("shutting down")
    finally:
        server.server_close()
        if pipeline.audit is not None:
            pipeline.audit.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="report-guard HTTP sidecar")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    serve(port=args.port)
