"""Tests for correlation id propagation into log records."""

import logging
from contextvars import Context, copy_context

from roombook.logging_context import (
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    new_request_id,
    set_request_id,
)


class TestRequestId:
    def test_default(self):
        assert Context().run(get_request_id) == "NO_REQUEST_ID"

    def test_set_and_get(self):
        def run():
            set_request_id("REQ-test")
            return get_request_id()

        assert copy_context().run(run) == "REQ-test"

    def test_new_request_id_prefix(self):
        def run():
            rid = new_request_id("SUB")
            return rid, get_request_id()

        rid, current = copy_context().run(run)
        assert rid.startswith("SUB-")
        assert len(rid) == len("SUB-") + 8
        assert current == rid


class TestRequestIdFilter:
    def test_filter_injects_id(self):
        def run():
            set_request_id("REQ-filter")
            record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
            RequestIdFilter().filter(record)
            return record.request_id

        assert copy_context().run(run) == "REQ-filter"

    def test_filter_attached_once(self):
        logger = get_request_logger("roombook.tests.logging")
        get_request_logger("roombook.tests.logging")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_service_tags_records(self, service, caplog):
        from tests.conftest import make_request

        with caplog.at_level(logging.INFO, logger="roombook.reservation_service"):
            service.submit_reservation(make_request())
        tagged = [r for r in caplog.records if r.name == "roombook.reservation_service"]
        assert tagged
        assert all(r.request_id.startswith("SUB-") for r in tagged)
