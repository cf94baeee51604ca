"""
Terraform EC2 Drift Detector.

Compares the live state of EC2 instances with their Terraform declarations and
produces a severity-ranked diff per instance.
"""

__version__ = "0.1.0"
