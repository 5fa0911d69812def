"""
num_search Remediation Job.

A one-time CLI job that finds job documents whose num_search lookup key
is missing, empty or malformed, recomputes it from job_id and client_code,
and writes per-record audit logs.

Usage:
    num-search-remediation count
    num-search-remediation run
    num-search-remediation status --run-id <run_id>
"""
__version__ = "1.0.0"
__author__ = "FinAC Team"
