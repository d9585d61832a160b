from pathlib import Path

from secscan.scanners import ScanContext
from secscan.scanners.xss import ScriptingScanner
from secscan.severity import Severity
from secscan.utils import load_document, load_document_file

SAMPLES = Path(__file__).resolve().parents[1] / "samples"


def test_vulnerable_document_patterns_are_flagged():
    document = load_document_file(SAMPLES / "vulnerable" / "index.html")

    findings = ScriptingScanner().scan(ScanContext(document=document))

    summary = [(f.rule_id, f.severity, f.location) for f in findings]
    assert ("dom-xss", Severity.MEDIUM, "script[0]") in summary
    assert ("dom-xss", Severity.HIGH, "script[0]") in summary
    assert ("inline-handler", Severity.LOW, "[onclick]") in summary
    assert ("javascript-url", Severity.MEDIUM, 'a[href^="javascript:"]') in summary
    assert len(findings) == 4


def test_external_scripts_are_ignored():
    document = load_document('<script src="/static/app.js"></script><p>hello</p>')

    assert ScriptingScanner().scan_document(document) == []


def test_inline_handlers_are_counted_per_attribute():
    document = load_document('<img onerror="x()"><img onerror="y()"><body onload="z()">')

    findings = {f.location: f for f in ScriptingScanner().scan_document(document)}

    assert findings["[onerror]"].evidence == "2"
    assert findings["[onload]"].evidence == "1"


def test_reflected_input_in_code_is_flagged_with_line():
    code = "function show(req) {\n  el.innerHTML = req.query.name;\n}\n"

    findings = ScriptingScanner().scan(ScanContext(source=code))

    assert len(findings) == 1
    assert findings[0].rule_id == "reflected-xss"
    assert findings[0].severity is Severity.HIGH
    assert findings[0].line == 2


def test_static_markup_assignment_is_not_flagged():
    code = 'el.innerHTML = "<b>static</b>";'

    assert ScriptingScanner().scan_code(code) == []
