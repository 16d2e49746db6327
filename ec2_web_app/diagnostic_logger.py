#!/usr/bin/env python3
"""
Diagnostic Logger for the EC2 web app deployment

Configures logging for CDK synthesis and records what happened while the
deployment description was loaded and validated, so a failed `cdk synth`
leaves a readable trail.
"""

import json
import logging
import os
import platform
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from .validate import ValidationReport, ValidationSeverity

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DIR_ENV_VAR = "EC2_WEB_APP_LOG_DIR"
LOG_LEVEL_ENV_VAR = "EC2_WEB_APP_LOG_LEVEL"

logger = logging.getLogger("diagnostic")


def configure_logging(level: Optional[str] = None):
    """
    Configure root logging.

    Logs go to stderr (stdout belongs to the CDK toolkit). A file handler is
    added only when EC2_WEB_APP_LOG_DIR is set.
    """
    level = (level or os.getenv(LOG_LEVEL_ENV_VAR) or "INFO").upper()
    handlers = [logging.StreamHandler(sys.stderr)]

    log_dir = os.getenv(LOG_DIR_ENV_VAR)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "diagnostic.log")))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


class DeploymentDiagnostics:
    """Centralized diagnostic logging for stack synthesis."""

    def __init__(self):
        self.start_time = datetime.now()
        self.errors = []
        self.warnings = []

    def log_environment(self):
        """Log interpreter and CDK environment information for debugging."""
        logger.info("=" * 60)
        logger.info("SYNTHESIS DIAGNOSTICS")
        logger.info("=" * 60)
        logger.info(f"Platform: {platform.platform()}")
        logger.info(f"Python Version: {sys.version.split()[0]}")
        logger.info(f"Working Directory: {os.getcwd()}")
        logger.info(f"Environment Variables: {[k for k in os.environ.keys() if k.startswith(('CDK_', 'AWS_', 'EC2_WEB_APP'))]}")
        logger.info("=" * 60)

    def log_validation_report(self, report: ValidationReport):
        """Route each validation result to the matching log level."""
        for result in report.results:
            context = result.details or {}
            if result.passed:
                self.log_success(f"{result.name}: {result.message}")
            elif result.severity == ValidationSeverity.ERROR:
                self.log_error(f"{result.name}: {result.message}", context)
            else:
                self.log_warning(f"{result.name}: {result.message}", context)

    def log_error(self, error_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log an error with context."""
        self.errors.append({
            'timestamp': datetime.now().isoformat(),
            'error': error_msg,
            'context': context or {}
        })
        logger.error(f"ERROR: {error_msg}")
        if context:
            logger.error(f"Context: {json.dumps(context, indent=2)}")

    def log_warning(self, warning_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log a warning with context."""
        self.warnings.append({
            'timestamp': datetime.now().isoformat(),
            'warning': warning_msg,
            'context': context or {}
        })
        logger.warning(f"WARNING: {warning_msg}")
        if context:
            logger.warning(f"Context: {json.dumps(context, indent=2)}")

    def log_success(self, success_msg: str):
        logger.info(f"SUCCESS: {success_msg}")

    def generate_report(self, report_path: Optional[str] = None) -> Dict[str, Any]:
        """Summarize recorded errors and warnings, optionally saving them as JSON."""
        report = {
            'start_time': self.start_time.isoformat(),
            'end_time': datetime.now().isoformat(),
            'errors': self.errors,
            'warnings': self.warnings,
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings)
        }

        if report_path:
            with open(report_path, 'w') as f:
                json.dump(report, f, indent=2)

        logger.info("=" * 60)
        logger.info("DIAGNOSTIC REPORT SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Total Errors: {len(self.errors)}")
        logger.info(f"Total Warnings: {len(self.warnings)}")
        if report_path:
            logger.info(f"Report saved to: {report_path}")
        logger.info("=" * 60)

        return report
