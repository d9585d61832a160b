import httpx

from secscan.rules.headers import csp_weakness, hsts_weakness
from secscan.scanners import ScanContext
from secscan.scanners.headers import HeaderScanner
from secscan.severity import Severity
from secscan.utils import load_document

STRONG_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
}


def scanner_returning(headers):
    def handler(request):
        assert request.method == "HEAD"
        return httpx.Response(200, headers=headers)

    return HeaderScanner(transport=httpx.MockTransport(handler))


def test_well_configured_endpoint_has_no_findings():
    findings = scanner_returning(STRONG_HEADERS).scan(ScanContext(url="https://app.example.test"))

    assert findings == []


def test_missing_required_headers_are_reported():
    findings = scanner_returning({}).scan_url("https://app.example.test")

    assert [(f.rule_id, f.location, f.severity) for f in findings] == [
        ("MISSING", "Content-Security-Policy", Severity.HIGH),
        ("MISSING", "X-Frame-Options", Severity.MEDIUM),
        ("MISSING", "X-Content-Type-Options", Severity.LOW),
    ]


def test_weak_header_values_are_reported_low():
    headers = {
        **STRONG_HEADERS,
        "Content-Security-Policy": "default-src * 'unsafe-inline' 'unsafe-eval'",
        "Strict-Transport-Security": "max-age=3600",
    }

    findings = scanner_returning(headers).scan_url("https://app.example.test")

    assert [(f.rule_id, f.location) for f in findings] == [
        ("WEAK", "Content-Security-Policy"),
        ("WEAK", "Strict-Transport-Security"),
    ]
    assert all(f.severity is Severity.LOW for f in findings)
    assert "unsafe-inline" in findings[0].description


def test_header_names_match_case_insensitively():
    headers = {
        "content-security-policy": "default-src 'self'",
        "x-frame-options": "SAMEORIGIN",
        "x-content-type-options": "nosniff",
    }

    assert HeaderScanner().evaluate_headers(headers) == []


def test_unreachable_url_yields_informational_finding():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    scanner = HeaderScanner(transport=httpx.MockTransport(handler))

    findings = scanner.scan_url("https://down.example.test")

    assert len(findings) == 1
    assert findings[0].rule_id == "fetch_error"
    assert findings[0].severity is Severity.INFO


def test_csp_weakness_detection():
    assert csp_weakness("default-src 'self'") is None
    assert csp_weakness("img-src https://*.example.com") is None
    assert "wildcard" in csp_weakness("default-src 'self'; script-src *")
    assert "unsafe-eval" in csp_weakness("script-src 'unsafe-inline' 'unsafe-eval'")
    assert csp_weakness("script-src 'unsafe-inline'") is None


def test_hsts_weakness_detection():
    assert hsts_weakness("max-age=31536000") is None
    assert hsts_weakness("max-age=600") is not None
    assert hsts_weakness("includeSubDomains") is not None


def test_document_without_csp_meta_is_flagged():
    document = load_document("<html><head><title>x</title></head><body></body></html>")

    findings = HeaderScanner().scan(ScanContext(document=document))

    assert [(f.rule_id, f.severity) for f in findings] == [("MISSING", Severity.HIGH)]


def test_document_with_csp_meta_is_checked_for_weakness():
    strong = load_document(
        '<head><meta http-equiv="Content-Security-Policy" content="default-src \'self\'"></head>'
    )
    weak = load_document('<head><meta http-equiv="content-security-policy" content="default-src *"></head>')

    assert HeaderScanner().scan_document(strong) == []
    findings = HeaderScanner().scan_document(weak)
    assert [(f.rule_id, f.severity) for f in findings] == [("WEAK", Severity.LOW)]
