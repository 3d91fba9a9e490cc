# file: connectors/servers/messaging_server.py
#!/usr/bin/env python3
import logging
import uuid
from datetime import datetime, timezone
from aiohttp import web

log = logging.getLogger("messaging")

class MessagingServer:
    """Messaging relay that records outbound chat messages per identity"""

    def __init__(self):
        self.threads = {}

    async def handle_rpc(self, request):
        data = await request.json()
        method = data.get("method")
        params = data.get("params", {})

        if method == "health":
            return web.json_response({"result": "ok"})

        elif method == "messages.send":
            message = {
                "id": str(uuid.uuid4()),
                "to": params["to"],
                "text": params["text"],
                "direction": "outbound",
                "sent_at": datetime.now(timezone.utc).isoformat()
            }
            self.threads.setdefault(params["to"], []).append(message)
            log.info("-> %s: %s", params["to"], params["text"][:80])
            return web.json_response({"result": {"message_id": message["id"]}})

        elif method == "messages.thread":
            identity = params.get("identity")
            return web.json_response({"result": {
                "identity": identity,
                "messages": self.threads.get(identity, [])
            }})

        return web.json_response({"error": "Unknown method"}, status=400)

def create_app(server: MessagingServer = None) -> web.Application:
    app = web.Application()
    app.router.add_post("/rpc", (server or MessagingServer()).handle_rpc)
    return app

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    web.run_app(create_app(), port=9005)
