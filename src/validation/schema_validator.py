from __future__ import annotations

import logging
from typing import List

from integration.sheets_client import describe_error, is_auth_expired
from workout_planner.errors import AUTH_EXPIRED_MESSAGE
from workout_planner.models import DEFAULT_CONTRACT, SchemaContract, ValidationResult

logger = logging.getLogger(__name__)


class SchemaValidator:
    """Checks a spreadsheet against a ``SchemaContract`` before its data is used.

    ``source`` is anything exposing ``get_sheet_names`` and ``get_header_row``
    (normally a loaded ``SheetsClient``). Validation only reads.
    """

    def __init__(self, contract: SchemaContract = DEFAULT_CONTRACT):
        self.contract = contract

    async def validate(self, source, sheet_id: str) -> ValidationResult:
        errors: List[str] = []

        try:
            sheet_names = await source.get_sheet_names(sheet_id)

            present = []
            for tab in self.contract.tabs:
                if tab in sheet_names:
                    present.append(tab)
                else:
                    errors.append(f'Missing required sheet: "{tab}"')

            # A missing tab has no header row to read
            for tab in present:
                try:
                    actual = await source.get_header_row(sheet_id, tab)
                except Exception as e:
                    if is_auth_expired(e):
                        raise
                    errors.append(
                        f'Failed to read headers from sheet "{tab}": {describe_error(e)}'
                    )
                    continue

                for header in self.contract.required_headers(tab):
                    if header not in actual:
                        errors.append(
                            f'Sheet "{tab}" is missing required column: "{header}"'
                        )

                if not actual:
                    errors.append(
                        f'Sheet "{tab}" appears to be empty (no headers found)'
                    )

        except Exception as e:
            if is_auth_expired(e):
                logger.warning(f"Login expired while validating {sheet_id}")
                return ValidationResult.from_errors([AUTH_EXPIRED_MESSAGE])
            logger.error(f"Failed to validate spreadsheet {sheet_id}: {e}")
            return ValidationResult.from_errors(
                [f"Failed to validate spreadsheet: {describe_error(e)}"]
            )

        result = ValidationResult.from_errors(errors)
        if not result.valid:
            logger.info(f"Spreadsheet {sheet_id} failed validation: {errors}")
        return result
