"""OrgSweep: identity inventory and remediation across an AWS Organization."""
