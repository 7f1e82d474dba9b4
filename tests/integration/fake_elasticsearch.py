"""In-process fake of the Elasticsearch REST endpoints used by the shipper.

Serves ``HEAD /``, ``POST /_bulk``, ``GET``/``PUT /_template/{name}`` and
``GET``/``POST /{index}/_search`` from memory, with failure injection:

- ``fail_bulk``: answer the next N bulk requests with ``bulk_status``
- ``reject_bulk``: mark every item of the next N bulk requests as failed
- ``garble_bulk``: answer the next N bulk requests with a body that is not JSON
- ``ping_status``: status returned by ``HEAD /``
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web


@dataclass
class FakeElasticsearch:
    """Async HTTP fake of an Elasticsearch node.

    Example:
        ```python
        async with FakeElasticsearch() as es:
            store = ElasticsearchStore(es.base_url)
        ```
    """

    host: str = "127.0.0.1"
    ping_status: int = 200
    fail_bulk: int = 0
    bulk_status: int = 503
    reject_bulk: int = 0
    garble_bulk: int = 0

    documents: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    templates: dict[str, dict[str, Any]] = field(default_factory=dict)
    bulk_requests: list[dict[str, str]] = field(default_factory=list)
    template_puts: list[dict[str, str]] = field(default_factory=list)

    _runner: web.AppRunner | None = field(default=None, init=False)
    _port: int | None = field(default=None, init=False)

    @property
    def base_url(self) -> str:
        if self._port is None:
            raise RuntimeError("Server is not running")
        return f"http://{self.host}:{self._port}"

    def all_documents(self) -> list[dict[str, Any]]:
        return [doc for docs in self.documents.values() for doc in docs]

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(status=self.ping_status)

    async def handle_bulk(self, request: web.Request) -> web.Response:
        self.bulk_requests.append(dict(request.query))
        if self.fail_bulk > 0:
            self.fail_bulk -= 1
            return web.json_response({"error": "unavailable"}, status=self.bulk_status)
        if self.garble_bulk > 0:
            self.garble_bulk -= 1
            return web.Response(text="{not json", content_type="application/json")

        lines = [line for line in (await request.text()).split("\n") if line]
        pairs = [
            (json.loads(action), json.loads(source))
            for action, source in zip(lines[0::2], lines[1::2], strict=True)
        ]

        if self.reject_bulk > 0:
            self.reject_bulk -= 1
            items = [
                {"index": {"status": 400, "error": {"type": "mapper_parsing_exception"}}}
                for _ in pairs
            ]
            return web.json_response({"errors": True, "items": items})

        items = []
        for action, source in pairs:
            index = action["index"]["_index"]
            self.documents.setdefault(index, []).append(source)
            items.append({"index": {"_index": index, "status": 201}})
        return web.json_response({"errors": False, "items": items})

    async def handle_get_template(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        if name not in self.templates:
            return web.json_response({}, status=404)
        return web.json_response({name: self.templates[name]})

    async def handle_put_template(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        self.template_puts.append(dict(request.query))
        if request.query.get("create") == "true" and name in self.templates:
            return web.json_response({"error": "already exists"}, status=400)
        self.templates[name] = await request.json()
        return web.json_response({"acknowledged": True})

    async def handle_search(self, request: web.Request) -> web.Response:
        q = request.query.get("q", "")
        hits = [
            {"_index": request.match_info["index"], "_source": doc}
            for doc in self.documents.get(request.match_info["index"], [])
            if q in json.dumps(doc)
        ]
        return web.json_response({"hits": {"total": {"value": len(hits)}, "hits": hits}})

    def _create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route("HEAD", "/", self.handle_ping)
        app.router.add_post("/_bulk", self.handle_bulk)
        app.router.add_get("/_template/{name}", self.handle_get_template)
        app.router.add_put("/_template/{name}", self.handle_put_template)
        app.router.add_get("/{index}/_search", self.handle_search)
        app.router.add_post("/{index}/_search", self.handle_search)
        return app

    async def start(self) -> None:
        if self._runner is not None:
            raise RuntimeError("Server is already running")
        self._runner = web.AppRunner(self._create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, 0)
        await site.start()
        self._port = self._runner.addresses[0][1]

    async def stop(self) -> None:
        if self._runner is None:
            raise RuntimeError("Server is not running")
        await self._runner.cleanup()
        self._runner = None
        self._port = None

    async def __aenter__(self) -> FakeElasticsearch:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
