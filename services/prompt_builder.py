"""
Prompt templates for budget suggestions and financial advice.

Both builders are pure: a FinancialSnapshot in, an instruction string out.
"""
import json
from typing import Iterable

from services.aggregator import CategorySummary, FinancialSnapshot

FORMAT_REQUIREMENTS = """Critical Requirements:
- Return ONLY valid JSON (no markdown, no code blocks, no commentary)
- Use double quotes for all property names and strings
- No trailing commas
- Escape special characters in strings"""


def _money(currency: str, amount: float) -> str:
    return f"{currency}{amount:.2f}"


def _number(value: float):
    """Render whole numbers without a trailing .0 in the schema example."""
    return int(value) if float(value).is_integer() else round(value, 2)


def _breakdown_lines(items: Iterable[CategorySummary], currency: str) -> str:
    lines = [f"- {item.category}: {_money(currency, item.amount)} ({item.percentage}%)" for item in items]
    return "\n".join(lines) if lines else "- none"


def _allowed_categories(snapshot: FinancialSnapshot) -> str:
    return ", ".join(snapshot.categories_seen) if snapshot.categories_seen else "none"


def build_budget_prompt(snapshot: FinancialSnapshot, currency: str = "₹") -> str:
    """Prompt for a full multi-category BudgetPlan."""
    period = snapshot.period
    summary_example = {
        "month": period.month,
        "year": period.year,
        "totalIncome": _number(snapshot.total_income),
        "totalExpenses": _number(snapshot.total_expenses),
        "netSavings": _number(snapshot.net_savings),
    }

    return f"""
Analyze this user's financial data for {period.label} and provide specific, actionable budgeting advice ONLY for this month.

User's Financial Snapshot:
- Total Income: {_money(currency, snapshot.total_income)}
- Total Expenses: {_money(currency, snapshot.total_expenses)}
- Savings: {_money(currency, snapshot.net_savings)}
- Savings Rate: {snapshot.savings_rate:.2f}%

Income Breakdown:
{_breakdown_lines(snapshot.income_breakdown, currency)}

Expense Breakdown:
{_breakdown_lines(snapshot.expense_breakdown, currency)}

Specific Instructions:
1. Focus ONLY on the month {period.label}
2. Analyze spending patterns in relation to income
3. Suggest budget adjustments ONLY for these expense categories: {_allowed_categories(snapshot)}
4. Provide concrete savings recommendations based on actual spending
5. Highlight concerning spending patterns (if any)
6. Suggest realistic adjustments; never recommend eliminating a category entirely

Required JSON Response Format:
{{
  "monthlySummary": {json.dumps(summary_example)},
  "budgetRecommendations": [
    {{
      "category": "category_name_from_expense_breakdown",
      "currentSpending": 250,
      "recommendedBudget": 200,
      "suggestion": "Specific actionable advice for this category",
      "adjustmentPercentage": -20
    }}
  ],
  "keyInsights": ["list of 3-5 key insights about this month's spending"],
  "actionableAdvice": ["list of 3-5 specific actions for next month"],
  "savingsOpportunities": ["list of potential savings opportunities"]
}}

{FORMAT_REQUIREMENTS}
- Only recommend adjustments for categories that exist in the expense breakdown
- All numbers must be based on the provided data
""".strip()


def build_advice_prompt(snapshot: FinancialSnapshot, currency: str = "₹") -> str:
    """Prompt for the compact four-field AdviceResult."""
    period = snapshot.period
    top = ", ".join(f"{item.category} ({_money(currency, item.amount)})" for item in snapshot.top_expenses(3))
    frequent = ", ".join(f"{name} ({count}x)" for name, count in snapshot.most_frequent(2))

    return f"""
Analyze this user's expense data for {period.label} and provide specific financial advice.
Focus only on suggesting practical ways to reduce expenses with these exact 4 fields in JSON format:
- advice: A short actionable advice (1 sentence)
- savingsGoal: A specific savings target amount with currency symbol ({currency})
- focusArea: The main expense category to focus on, chosen from: {_allowed_categories(snapshot)}
- reductionPercentage: A realistic whole-number percentage to reduce (5-30)

Expense Data:
- Total Expenses: {_money(currency, snapshot.total_expenses)}
- Top Categories: {top or 'none'}
- Frequent Expenses: {frequent or 'none'}

Response Requirements:
1. Return ONLY raw JSON with the 4 specified fields
2. Do not suggest eliminating any category entirely
3. Example format:
{{
  "advice": "Reduce eating out by cooking more at home",
  "savingsGoal": "{currency}2000",
  "focusArea": "restaurants",
  "reductionPercentage": 15
}}

{FORMAT_REQUIREMENTS}
""".strip()
