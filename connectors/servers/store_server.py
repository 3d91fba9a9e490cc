# file: connectors/servers/store_server.py
#!/usr/bin/env python3
import os
from pathlib import Path
from aiohttp import web

from connectors.store import DocumentStore

class StoreServer:
    """Store server with JSON persistence, serving DocumentStore over RPC"""

    def __init__(self, data_dir: Path = None):
        self.store = DocumentStore(data_dir or Path(os.getenv("DATA_DIR", "data")))

    async def handle_rpc(self, request):
        data = await request.json()
        method = data.get("method")
        params = data.get("params", {})

        if method == "health":
            return web.json_response({"result": "ok"})

        elif method == "store.get":
            doc = await self.store.get(params["collection"], params["id"])
            return web.json_response({"result": doc})

        elif method == "store.set":
            await self.store.set(
                params["collection"], params["id"], params["record"], merge=params.get("merge", False)
            )
            return web.json_response({"result": "saved"})

        elif method == "store.query":
            rows = await self.store.query(
                params["collection"],
                filters=params.get("filters"),
                order_by=params.get("order_by"),
                descending=params.get("descending", False),
                limit=params.get("limit"),
            )
            return web.json_response({"result": rows})

        elif method == "store.count":
            return web.json_response({"result": await self.store.count(params["collection"])})

        elif method == "store.clear_all":
            await self.store.clear_all()
            return web.json_response({"result": "cleared"})

        return web.json_response({"error": "Unknown method"}, status=400)

def create_app(server: StoreServer = None) -> web.Application:
    app = web.Application()
    app.router.add_post("/rpc", (server or StoreServer()).handle_rpc)
    return app

if __name__ == "__main__":
    web.run_app(create_app(), port=9004)
