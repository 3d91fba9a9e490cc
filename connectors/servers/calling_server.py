# file: connectors/servers/calling_server.py
#!/usr/bin/env python3
import logging
import random
import string
import time
from datetime import datetime, timedelta, timezone
from aiohttp import web

log = logging.getLogger("calling")

SUCCESS_RATE = 0.95

def _base36(n: int) -> str:
    digits = string.digits + string.ascii_lowercase
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = digits[r] + out
    return out or "0"

def generate_call_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"call_{_base36(int(time.time() * 1000))}_{suffix}"

class CallingServer:
    """Mock call scheduler: books a call within the next 30 minutes"""

    def __init__(self, success_rate: float = SUCCESS_RATE):
        self.success_rate = success_rate
        self.calls = []

    def schedule(self, name, number, email) -> dict:
        if random.random() >= self.success_rate:
            log.warning("Call scheduling failed for %s", number)
            return {"success": False, "error": "Unable to reach the contact at this time"}

        call_id = generate_call_id()
        scheduled_for = datetime.now(timezone.utc) + timedelta(minutes=random.uniform(0, 30))
        self.calls.append({
            "call_id": call_id,
            "name": name,
            "number": number,
            "email": email,
            "scheduled_for": scheduled_for.isoformat(),
        })
        log.info("Call %s scheduled for %s at %s", call_id, number, scheduled_for.isoformat())
        return {"success": True, "call_id": call_id, "scheduled_for": scheduled_for.isoformat()}

    async def handle_rpc(self, request):
        data = await request.json()
        method = data.get("method")
        params = data.get("params", {})

        if method == "health":
            return web.json_response({"result": "ok"})

        elif method == "calls.schedule":
            result = self.schedule(params.get("name"), params.get("number"), params.get("email"))
            return web.json_response({"result": result})

        elif method == "calls.list":
            return web.json_response({"result": self.calls})

        return web.json_response({"error": "Unknown method"}, status=400)

def create_app(server: CallingServer = None) -> web.Application:
    app = web.Application()
    app.router.add_post("/rpc", (server or CallingServer()).handle_rpc)
    return app

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    web.run_app(create_app(), port=9006)
