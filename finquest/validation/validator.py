"""
Two-Stage Draft Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Positive amounts, bounded lengths
- This catches malformed input from the UI, voice or import collaborators

STAGE 2 - SEMANTIC VALIDATION:
- Checks against the current store
- Category type vs transaction type convention
- Dates far in the future
- This catches input that is well-formed but probably wrong

Stage 2 only produces warnings. Broken references are not validation
issues: the engine raises the matching NotFoundError for those.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the engine can refuse or the caller can warn.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from finquest.engine.errors import InvalidInputError
from finquest.models.finance import GoalDraft, TransactionDraft
from finquest.models.validation import ValidationIssue, ValidationResult


ModelT = TypeVar("ModelT", bound=BaseModel)

# Dates further ahead than this are flagged, not refused.
FUTURE_DATE_TOLERANCE = timedelta(days=366)


def _issues_from_schema_error(error: SchemaError) -> list[ValidationIssue]:
    issues = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "payload"
        issues.append(ValidationIssue(
            field=field,
            issue_type=item["type"],
            message=f"{field}: {item['msg']}",
            severity="error",
        ))
    return issues


class DraftValidator:
    """
    Validates drafts before any engine mutation.

    Stage 1 needs nothing but the payload.
    Stage 2 receives the categories it checks against.
    """

    def parse(self, model: type[ModelT], data: Any) -> tuple[Optional[ModelT], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns (parsed_model_or_None, list_of_issues).
        """
        if isinstance(data, model):
            return data, []
        try:
            if isinstance(data, BaseModel):
                data = data.model_dump()
            return model.model_validate(data), []
        except SchemaError as e:
            return None, _issues_from_schema_error(e)

    def _semantic_transaction(
        self,
        draft: TransactionDraft,
        category_type: Optional[str],
        now: datetime,
    ) -> list[ValidationIssue]:
        """Stage 2 for transactions. Warnings only."""
        issues = []

        if category_type is not None and category_type != draft.type.value:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="type_mismatch",
                message=f"A {draft.type.value} is filed under a {category_type} category",
                severity="warning",
                suggested_fix="Pick a category of the same type as the transaction",
            ))

        if draft.date > now + FUTURE_DATE_TOLERANCE:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({draft.date.date()}) is more than a year ahead",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if draft.installments is not None and draft.type.value == "income":
            issues.append(ValidationIssue(
                field="installments",
                issue_type="suspicious_value",
                message="Installments are usually set on expenses, not income",
                severity="warning",
            ))

        return issues

    def validate_transaction(
        self,
        data: Any,
        category_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Optional[TransactionDraft], ValidationResult]:
        """Run both stages on a transaction draft."""
        draft, issues = self.parse(TransactionDraft, data)
        if draft is None:
            return None, ValidationResult(schema_valid=False, semantic_valid=False, issues=issues)

        semantic = self._semantic_transaction(draft, category_type, now or datetime.now())
        issues.extend(semantic)
        semantic_valid = not any(issue.severity == "error" for issue in semantic)
        return draft, ValidationResult(schema_valid=True, semantic_valid=semantic_valid, issues=issues)

    def validate_goal(self, data: Any) -> tuple[Optional[GoalDraft], ValidationResult]:
        draft, issues = self.parse(GoalDraft, data)
        if draft is None:
            return None, ValidationResult(schema_valid=False, semantic_valid=False, issues=issues)

        if draft.current_amount >= draft.target_amount:
            issues.append(ValidationIssue(
                field="current_amount",
                issue_type="already_reached",
                message="The goal starts already reached",
                severity="warning",
            ))
        return draft, ValidationResult(schema_valid=True, semantic_valid=True, issues=issues)

    def parse_amount(self, value: Any, field: str) -> Decimal:
        """Coerce a number-like value to Decimal or raise InvalidInputError."""
        if isinstance(value, bool):
            raise self._bad_amount(field, value)
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise self._bad_amount(field, value)
        if not amount.is_finite():
            raise self._bad_amount(field, value)
        return amount

    def _bad_amount(self, field: str, value: Any) -> InvalidInputError:
        issue = ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"{field} must be a number, got {value!r}",
            severity="error",
        )
        return InvalidInputError(issue.message, [issue])

    def validate_pin(self, pin: Any, length: int) -> str:
        if not isinstance(pin, str) or len(pin) != length or not pin.isdigit():
            issue = ValidationIssue(
                field="pin",
                issue_type="invalid_format",
                message=f"PIN must be exactly {length} digits",
                severity="error",
            )
            raise InvalidInputError(issue.message, [issue])
        return pin

    def require(self, model: type[ModelT], data: Any) -> ModelT:
        """Stage 1 only; raise InvalidInputError on any schema issue."""
        parsed, issues = self.parse(model, data)
        if parsed is None:
            raise InvalidInputError(self.summarize(issues), issues)
        return parsed

    def raise_if_invalid(self, result: ValidationResult) -> None:
        if result.has_errors:
            raise InvalidInputError(self.summarize(result.issues), result.issues)

    @staticmethod
    def summarize(issues: list[ValidationIssue]) -> str:
        errors = [issue.message for issue in issues if issue.severity == "error"]
        if not errors:
            return "Input is valid"
        return "Invalid input: " + "; ".join(errors)
