"""Pipeline pre-deploy hook that gates a deployment on the scan report's policy outcome."""

from __future__ import annotations

import json
import os
import tempfile
import zipfile

import boto3

REPORT_PATH = os.environ.get("SCAN_REPORT_PATH", "artifacts/scan.json")
FAILURE_GUIDE_URL = os.environ.get(
    "GUIDE_URL",
    "https://owasp.org/www-project-top-ten/",
)

ORDER = ["CRITICAL", "HIGH", "MEDIUM", "LOW", "INFO"]


def _extract_artifact(job_data: dict, target_path: str):
    credentials = job_data["artifactCredentials"]
    session = boto3.Session(
        aws_access_key_id=credentials["accessKeyId"],
        aws_secret_access_key=credentials["secretAccessKey"],
        aws_session_token=credentials["sessionToken"],
        region_name=os.environ.get("AWS_REGION"),
    )
    s3_client = session.client("s3")

    artifact = job_data["inputArtifacts"][0]
    bucket = artifact["location"]["s3Location"]["bucketName"]
    key = artifact["location"]["s3Location"]["objectKey"]

    with tempfile.NamedTemporaryFile() as tmp_file:
        s3_client.download_file(bucket, key, tmp_file.name)
        with zipfile.ZipFile(tmp_file.name) as zipped:
            with zipped.open(target_path) as scan_file:
                return json.loads(scan_file.read().decode("utf-8"))


def _as_results(report) -> list[dict]:
    # The CLI writes one result as an object and several as a list.
    if isinstance(report, list):
        return [item for item in report if isinstance(item, dict)]
    if isinstance(report, dict):
        return [report]
    raise ValueError("scan report must be a JSON object or list")


def _top_findings(results: list[dict], limit: int = 10) -> list[str]:
    findings = [item for result in results for item in result.get("findings", [])]
    ordered = sorted(
        findings,
        key=lambda item: ORDER.index(item.get("severity")) if item.get("severity") in ORDER else len(ORDER),
    )
    highlights = []
    for item in ordered[:limit]:
        location = item.get("location") or "-"
        highlights.append(f"[{item.get('severity')}] {item.get('ruleId')} {item.get('title')} -> {location}")
    return highlights


def evaluate_report(report) -> tuple[bool, str]:
    """Return whether every result passed its policy, plus a human-readable message."""

    results = _as_results(report)
    failed = [result for result in results if not result.get("policyPassed", False)]
    passed = bool(results) and not failed

    message_lines = [
        "Scan verification (pre-deploy hook)",
        f"Passed: {passed}",
    ]
    for result in results:
        status = "PASS" if result.get("policyPassed") else "FAIL"
        message_lines.append(f"{status} {result.get('name')}: {result.get('severityCounts', {})}")
    highlights = _top_findings(failed)
    if highlights:
        message_lines.append("Highlights:")
        message_lines.extend(highlights)
    if not passed:
        message_lines.append(f"Remediation: {FAILURE_GUIDE_URL}")
    return passed, "\n".join(message_lines)


def handler(event, _context):
    job = event["CodePipeline.job"]
    job_id = job["id"]
    data = job["data"]

    client = boto3.client("codepipeline")

    try:
        report = _extract_artifact(data, REPORT_PATH)
        passed, message = evaluate_report(report)
    except Exception as exc:  # pylint: disable=broad-except
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": f"Failed to read {REPORT_PATH}: {exc}",
            },
        )
        return

    if not passed:
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": message,
            },
        )
        return

    client.put_job_success_result(jobId=job_id, executionDetails={"summary": "Scan policy gate passed"})
