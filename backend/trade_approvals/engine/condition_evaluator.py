"""Condition Evaluator - Safe evaluation of rule conditions against ticket facts"""
from typing import Any, Callable, Dict, List, Optional

from ..domain.models import Condition, ListCondition
from ..domain.enums import ConditionOperator, RuleCombinator
from ..utils.logger import get_logger

logger = get_logger(__name__)


class _Absent:
    """Marker for a fact that is missing from the record"""

    def __repr__(self) -> str:
        return "<absent>"


ABSENT = _Absent()


class ConditionEvaluator:
    """
    Evaluate rule conditions safely

    Uses a simple DSL - no eval() or exec(). Evaluation never raises:
    anything unexpected is logged and the condition does not match.
    """

    def evaluate(self, condition: Condition, facts: Dict[str, Any]) -> bool:
        """
        Evaluate a single condition

        Args:
            condition: Condition to test
            facts: Flat fact record (field name -> scalar)

        Returns:
            True if the condition holds
        """
        try:
            field_value = self._get_fact(condition.field, facts)
            if isinstance(condition, ListCondition):
                return self._compare_list(field_value, condition.operator, condition.values)
            return self._compare(field_value, condition.operator, condition.value)
        except Exception as e:
            logger.warning(f"Condition evaluation failed for field '{getattr(condition, 'field', None)}': {e}")
            return False  # Fail closed

    def evaluate_all(
        self,
        conditions: List[Condition],
        combinator: RuleCombinator,
        facts: Dict[str, Any]
    ) -> bool:
        """
        Evaluate a condition set joined by AND / OR

        An empty condition set never matches.
        """
        if not conditions:
            return False

        results = [self.evaluate(condition, facts) for condition in conditions]

        if combinator == RuleCombinator.OR:
            return any(results)
        return all(results)

    def _get_fact(self, field: str, facts: Dict[str, Any]) -> Any:
        value = facts.get(field, ABSENT)
        if value is None:
            return ABSENT
        return value

    def _compare(self, field_value: Any, operator: str, compare_value: Any) -> bool:
        """Compare a fact against a single value"""

        if operator == ConditionOperator.EQUALS.value:
            if field_value is ABSENT:
                return False
            return self._values_equal(field_value, compare_value)

        elif operator == ConditionOperator.NOT_EQUALS.value:
            if field_value is ABSENT:
                return True
            return not self._values_equal(field_value, compare_value)

        elif operator == ConditionOperator.GREATER_THAN.value:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a > b)

        elif operator == ConditionOperator.LESS_THAN.value:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a < b)

        elif operator == ConditionOperator.GREATER_OR_EQUAL.value:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a >= b)

        elif operator == ConditionOperator.LESS_OR_EQUAL.value:
            return self._compare_numeric(field_value, compare_value, lambda a, b: a <= b)

        logger.warning(f"Unknown condition operator: {operator}")
        return False

    def _compare_list(self, field_value: Any, operator: str, values: List[Any]) -> bool:
        """Test a fact for membership in a list of values"""
        if field_value is ABSENT:
            return operator == ConditionOperator.NOT_IN.value

        found = any(self._values_equal(field_value, candidate) for candidate in values)

        if operator in (ConditionOperator.IN.value, ConditionOperator.IS_ONE_OF.value):
            return found
        elif operator == ConditionOperator.NOT_IN.value:
            return not found

        logger.warning(f"Unknown condition operator: {operator}")
        return False

    def _values_equal(self, left: Any, right: Any) -> bool:
        # True == 1 in Python; a boolean only equals another boolean
        if isinstance(left, bool) or isinstance(right, bool):
            return isinstance(left, bool) and isinstance(right, bool) and left == right
        return left == right

    def _compare_numeric(
        self,
        field_value: Any,
        compare_value: Any,
        comparator: Callable[[float, float], bool]
    ) -> bool:
        """Compare numeric values, failing closed on non-numeric input"""
        a = self._to_number(field_value)
        b = self._to_number(compare_value)
        if a is None or b is None:
            return False
        return comparator(a, b)

    def _to_number(self, value: Any) -> Optional[float]:
        if value is ABSENT or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None
