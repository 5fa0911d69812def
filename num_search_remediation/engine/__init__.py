"""
Engine modules for remediation logic.

- predicate: Candidate filter and recomputation rules
- Remediator: Scan and patch candidate documents
"""
from num_search_remediation.engine.remediator import Remediator, RemediationFatalError

__all__ = ["Remediator", "RemediationFatalError"]
