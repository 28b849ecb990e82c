"""Callback-style sample plugin: registers routes, then calls done()"""
from aiohttp import web


async def hello(request: web.Request) -> web.Response:
    return web.json_response({"hello": "world"})


async def echo(request: web.Request) -> web.Response:
    body = await request.read()
    return web.Response(body=body, content_type=request.content_type)


def plugin(app, options, done):
    app.router.add_get("/hello", hello)
    app.router.add_post("/echo", echo)
    app.logger.info(f"hello plugin registered (prefix: {options.get('prefix', '/')})")
    done()
