from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram


registry = CollectorRegistry()
reports_generated = Counter("trustreport_reports_generated_total", "Reports generated", registry=registry)
report_failures = Counter(
    "trustreport_report_failures_total",
    "Report requests that failed",
    labelnames=("reason",),
    registry=registry,
)
avatar_source = Counter(
    "trustreport_avatar_source_total",
    "Avatar source used for a report",
    labelnames=("source",),
    registry=registry,
)
pdf_time = Histogram("trustreport_pdf_generation_time_seconds", "PDF generation time", registry=registry)
