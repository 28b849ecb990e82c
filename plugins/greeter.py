"""Async sample plugin exporting application options"""
from aiohttp import web

# Merged into the web.Application settings when started with --options
options = {
    "client_max_size": 64,
}


async def greet(request: web.Request) -> web.Response:
    name = request.match_info.get("name", "stranger")
    return web.json_response({"greeting": f"Hello, {name}!"})


async def upload(request: web.Request) -> web.Response:
    body = await request.read()
    return web.json_response({"size": len(body)})


async def plugin(app, options):
    app.router.add_get("/greet/{name}", greet)
    app.router.add_post("/upload", upload)
