"""
Tracescope - Requirements traceability matrix for audit-ready projects.

A CLI tool that:
1. Scans requirement files, test files, git branches, compliance mappings and features
2. Links every requirement to the tests, branches, code and clauses that prove it
3. Computes coverage at requirement, feature and compliance-framework level
4. Signs the matrix and exports an audit package (HTML, CSV, JSON, Markdown)

Usage:
    tracescope init               # Write a sample tracescope.yml
    tracescope generate           # Build and persist the matrix
    tracescope validate REQ-001   # Check traceability for one requirement
    tracescope audit-export       # Write the audit package
    tracescope coverage           # Show the coverage report
    tracescope verify             # Check the persisted matrix signature
"""

__version__ = "0.1.0"
