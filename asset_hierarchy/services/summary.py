from __future__ import annotations

from ..models.validation_result import ValidationResult

"""Summary line rendering for a validation result.

Format:
SUMMARY assets={total} valid={valid} duplicates={groups} orphans={rows}
cycles={cycles} missing_names={rows} has_errors={true|false}
"""


def render_summary_line(result: ValidationResult) -> str:
    """Render a SUMMARY line from a ValidationResult.

    Examples:
        >>> render_summary_line(ValidationResult(total_assets=3, valid_assets=3))
        'SUMMARY assets=3 valid=3 duplicates=0 orphans=0 cycles=0 missing_names=0 has_errors=false'
    """
    return (
        f"SUMMARY assets={result.total_assets} "
        f"valid={result.valid_assets} "
        f"duplicates={len(result.duplicates)} "
        f"orphans={result.orphan_count} "
        f"cycles={len(result.cycles)} "
        f"missing_names={len(result.missing_names)} "
        f"has_errors={'true' if result.has_errors else 'false'}"
    )
