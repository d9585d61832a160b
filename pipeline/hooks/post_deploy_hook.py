"""Pipeline post-deploy hook that audits the deployed endpoint's security headers."""

from __future__ import annotations

import json
import os

import boto3

from secscan.config import load_settings
from secscan.orchestrator import ScanOrchestrator

STACK_NAME = os.environ.get("STACK_NAME", "secscan-demo")
OUTPUT_KEY = os.environ.get("ENDPOINT_OUTPUT_KEY", "ApiUrl")
GUIDE_URL = os.environ.get(
    "GUIDE_URL",
    "https://owasp.org/www-project-secure-headers/",
)


def _endpoint_url(cfn, stack_name: str, output_key: str) -> str:
    stacks = cfn.describe_stacks(StackName=stack_name)["Stacks"]
    for output in stacks[0].get("Outputs", []):
        if output.get("OutputKey") == output_key:
            return output["OutputValue"]
    raise KeyError(f"stack {stack_name} has no output {output_key}")


def handler(event, _context):
    job = event["CodePipeline.job"]
    job_id = job["id"]
    client = boto3.client("codepipeline")
    cfn = boto3.client("cloudformation")

    try:
        url = _endpoint_url(cfn, STACK_NAME, OUTPUT_KEY)
    except Exception as exc:  # pylint: disable=broad-except
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": f"Unable to resolve endpoint of stack {STACK_NAME}: {exc}",
            },
        )
        return

    orchestrator = ScanOrchestrator(settings=load_settings())
    result = orchestrator.run_dynamic_scan(url, scan_types=("headers",), name=f"Post-deploy: {STACK_NAME}")

    if not result.policy_passed:
        findings = [
            f"[{finding.severity.value}] {finding.title}" for finding in result.top_findings(10)
        ]
        message = "Post-deploy header audit failed:\n" + "\n".join(findings) + f"\nRemediation: {GUIDE_URL}"
        client.put_job_failure_result(
            jobId=job_id,
            failureDetails={
                "type": "JobFailed",
                "message": message,
            },
        )
        return

    summary = {
        "stack": STACK_NAME,
        "endpoint": url,
        "severityCounts": result.severity_counts.to_dict(),
    }
    client.put_job_success_result(jobId=job_id, executionDetails={"summary": json.dumps(summary)})
