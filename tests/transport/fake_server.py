"""Scripted newline-delimited JSON-RPC server used as a transport child.

Each request method selects a behaviour:

- initialize: handshake result with serverInfo
- echo: result is the request params
- fail: JSON-RPC error with code, message and data
- hang: never answers
- garbage: writes malformed lines, then answers
- notify: emits a notification carrying the params, then answers
- ask: sends a request to the parent and returns the parent's reply
- split: writes the response in two separate pieces
- stderr: writes to stderr, then answers
- exit: exits with status 3 without answering
"""

import json
import sys
import time


def _send(message: dict) -> None:
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def _reply(request: dict, result: object) -> None:
    _send({"jsonrpc": "2.0", "id": request["id"], "result": result})


def main() -> None:
    for raw in sys.stdin:
        raw = raw.strip()
        if not raw:
            continue
        request = json.loads(raw)
        if "id" not in request:
            continue
        method = request.get("method")
        params = request.get("params") or {}

        if method == "initialize":
            _reply(
                request,
                {
                    "protocolVersion": params.get("protocolVersion"),
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": "fake-server", "version": "9.9.9"},
                },
            )
        elif method == "echo":
            _reply(request, params)
        elif method == "fail":
            _send(
                {
                    "jsonrpc": "2.0",
                    "id": request["id"],
                    "error": {"code": -32000, "message": "boom", "data": {"hint": "x"}},
                }
            )
        elif method == "hang":
            continue
        elif method == "garbage":
            sys.stdout.write("this is not json\n")
            sys.stdout.write("[1, 2, 3]\n")
            sys.stdout.write("\n")
            sys.stdout.flush()
            _reply(request, {"ok": True})
        elif method == "notify":
            _send({"jsonrpc": "2.0", "method": "notifications/progress", "params": params})
            _reply(request, {"ok": True})
        elif method == "ask":
            _send({"jsonrpc": "2.0", "id": "srv-1", "method": params.get("method", "ping")})
            answer = json.loads(sys.stdin.readline())
            _reply(request, answer)
        elif method == "split":
            text = json.dumps({"jsonrpc": "2.0", "id": request["id"], "result": params})
            half = len(text) // 2
            sys.stdout.write(text[:half])
            sys.stdout.flush()
            time.sleep(0.05)
            sys.stdout.write(text[half:] + "\n")
            sys.stdout.flush()
        elif method == "stderr":
            sys.stderr.write("diagnostic output\n")
            sys.stderr.flush()
            _reply(request, {"ok": True})
        elif method == "exit":
            sys.exit(3)
        else:
            _send(
                {
                    "jsonrpc": "2.0",
                    "id": request["id"],
                    "error": {"code": -32601, "message": f"Method not found: {method}"},
                }
            )


if __name__ == "__main__":
    main()
