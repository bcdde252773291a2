# Overview: Fire-and-forget user feedback channel (toasts).

"""
notify(kind, message) fans out to every registered sink. It is always called
after the business transaction has committed, and a sink failure is logged
and dropped: feedback delivery can never roll back or fail a stocktake.

Sinks:
- LoggingSink: always installed; writes to the app logger.
- WebhookSink: installed when NOTIFY_WEBHOOK_URL is configured; POSTs
  {"kind", "message"} JSON with httpx.
"""
from __future__ import annotations

import logging

import httpx
from flask import Flask, current_app

KIND_SUCCESS = "success"
KIND_ERROR = "error"
KIND_INFO = "info"
KIND_WARNING = "warning"

KINDS = (KIND_SUCCESS, KIND_ERROR, KIND_INFO, KIND_WARNING)

_LEVELS = {
    KIND_SUCCESS: logging.INFO,
    KIND_INFO: logging.INFO,
    KIND_WARNING: logging.WARNING,
    KIND_ERROR: logging.ERROR,
}


class LoggingSink:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def __call__(self, kind: str, message: str) -> None:
        self.logger.log(_LEVELS.get(kind, logging.INFO), "[notify:%s] %s", kind, message)


class WebhookSink:
    """
    POSTs each notification to a URL.

    A client is opened and closed per call, so no connection outlives the
    request that triggered it. The timeout bounds how long a slow receiver
    can hold that request.
    """

    def __init__(self, url: str, *, timeout: float = 2.0, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def __call__(self, kind: str, message: str) -> None:
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            response = client.post(self.url, json={"kind": kind, "message": message})
            response.raise_for_status()


class NotificationChannel:
    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.sinks = [LoggingSink(logger)]

    def add_sink(self, sink) -> None:
        self.sinks.append(sink)

    def remove_sink(self, sink) -> None:
        self.sinks.remove(sink)

    def notify(self, kind: str, message: str) -> None:
        if kind not in KINDS:
            kind = KIND_INFO
        for sink in list(self.sinks):
            try:
                sink(kind, message)
            except Exception:
                self.logger.exception("Notification sink %r failed", sink)


def init_app(app: Flask) -> NotificationChannel:
    channel = NotificationChannel(app.logger)
    url = app.config.get("NOTIFY_WEBHOOK_URL")
    if url:
        channel.add_sink(WebhookSink(url, timeout=app.config.get("NOTIFY_WEBHOOK_TIMEOUT", 2.0)))
    app.extensions["notifications"] = channel
    return channel


def get_channel() -> NotificationChannel:
    return current_app.extensions["notifications"]


def notify(kind: str, message: str) -> None:
    get_channel().notify(kind, message)
