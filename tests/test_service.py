from __future__ import annotations

import json
import unittest

from kotoba.errors import ServiceError, UndefinedVariable, format_diagnostic
from kotoba.main import explain_source, run_source
from kotoba.service import capabilities_request, check_request, dispatch, run_request, safe_dispatch


class ServiceTests(unittest.TestCase):
    def test_run_request_returns_value_and_output(self) -> None:
        result = run_request({"source": 'print("hi"), 1 + 2'})
        self.assertEqual(result["value"], 3)
        self.assertEqual(result["kind"], "Number")
        self.assertEqual(result["output"], "hi")

    def test_run_request_nil_and_fraction(self) -> None:
        self.assertIsNone(run_request({"source": "nil"})["value"])
        self.assertEqual(run_request({"source": "1 / 4"})["value"], 0.25)

    def test_run_request_honours_limits(self) -> None:
        ok, payload = safe_dispatch("run", {"source": "while true: 1;", "max_steps": 10})
        self.assertFalse(ok)
        self.assertEqual(payload["error"]["code"], "HOST001")

    def test_invalid_limits(self) -> None:
        with self.assertRaises(ServiceError) as ctx:
            run_request({"source": "1", "max_steps": "many"})
        self.assertEqual(ctx.exception.code, "SRV003")

    def test_check_request(self) -> None:
        self.assertEqual(check_request({"source": "x = 1, y = 2"}), {"ok": True, "statements": 2})

    def test_safe_dispatch_reports_syntax_error_with_span(self) -> None:
        ok, payload = safe_dispatch("check", {"source": "if true: 1", "filename": "demo.kb"})
        self.assertFalse(ok)
        error = payload["error"]
        self.assertEqual(error["code"], "SYN003")
        self.assertEqual(error["span"]["file"], "demo.kb")
        json.dumps(payload)

    def test_safe_dispatch_reports_runtime_error(self) -> None:
        ok, payload = safe_dispatch("run", {"source": "fn f(a): ret a; f()"})
        self.assertFalse(ok)
        self.assertEqual(payload["error"]["code"], "RUN004")

    def test_unknown_method(self) -> None:
        with self.assertRaises(ServiceError) as ctx:
            dispatch("compile", {"source": "1"})
        self.assertEqual(ctx.exception.code, "SRV001")

    def test_missing_source(self) -> None:
        ok, payload = safe_dispatch("run", {})
        self.assertFalse(ok)
        self.assertEqual(payload["error"]["code"], "SRV002")

    def test_explain_is_json_serializable(self) -> None:
        payload = dispatch("explain", {"source": "fn f(a): ret a; f(1)"})
        self.assertEqual(payload["ast"]["node_type"], "Program")
        self.assertEqual(payload["tokens"][-1]["type"], "EOF")
        json.dumps(payload)
        self.assertEqual(payload, explain_source("fn f(a): ret a; f(1)", filename="<inline>"))

    def test_capabilities_request(self) -> None:
        caps = capabilities_request({})
        self.assertEqual(caps["service"], "kotoba")
        self.assertIn("run", caps["methods"])
        self.assertEqual(caps["builtins"], ["print"])

    def test_format_diagnostic(self) -> None:
        with self.assertRaises(UndefinedVariable) as ctx:
            run_source("x = 1,\ny + 1", filename="demo.kb")
        line = format_diagnostic(ctx.exception.to_diagnostic())
        self.assertTrue(line.startswith("RUN003 demo.kb:2:1: Undefined variable 'y'."))
        self.assertIn("Hint:", line)


if __name__ == "__main__":
    unittest.main()
