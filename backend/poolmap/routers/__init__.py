# API Routers

from . import blocks, health, pools, render, websocket

__all__ = ["blocks", "health", "pools", "render", "websocket"]
