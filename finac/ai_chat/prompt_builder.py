"""Prompt assembly utilities for the AI chat assistant.

The system prompt describes the six queryable record kinds and the JSON
directive contract the model must embed in its reply so the backend can
run the query and pick a presentation.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .config import ChatConfig, chat_config

DATA_MODELS = """\
1. **Transaction** - Financial transactions with:
   - amount, transactionType (CREDIT/DEBIT), status (PENDING/COMPLETED/FAILED), date, description
   - category, subCategory, bankAccount
   - paymentMethod (CASH, UPI, CARD, ONLINE, OTHER)

2. **Investment** - Investment records with:
   - name, type (STOCKS, MUTUAL_FUNDS, GOLD, FIXED_DEPOSIT, NPS, PF)
   - currentPrice, investedAmount, currentValue, quantity
   - purchaseDate, symbol

3. **Goal** - Financial goals with:
   - name, targetAmount, currentAmount, targetDate
   - isActive status

4. **Asset** - Physical assets with:
   - name, type (PROPERTY, VEHICLE, JEWELRY, ELECTRONICS, OTHER)
   - currentValue, purchaseValue, purchaseDate
   - sellDate, sellPrice, profitLoss

5. **BankAccount** - Bank accounts with:
   - name, accountNumber, bankName, accountType
   - startingBalance, isActive

6. **BankTransaction** - Bank account transactions with:
   - amount, transactionType (CREDIT/DEBIT), transactionDate
   - currentBalance, description"""

DIRECTIVE_CONTRACT = """\
```json
{
  "queryType": "TEXT" | "TABLE" | "CHART",
  "entity": "transaction" | "investment" | "goal" | "asset" | "bankAccount" | "bankTransaction",
  "filters": {
    "dateFrom": "YYYY-MM-DD",
    "dateTo": "YYYY-MM-DD",
    "type": "value",
    "category": "value",
    "status": "value"
  },
  "aggregation": "sum" | "count" | "average" | null,
  "groupBy": "date" | "category" | "type" | "transactionType" | null,
  "chartType": "line" | "bar" | "pie" | "donut" | null,
  "explanation": "Natural language explanation of what the data shows"
}
```"""


class PromptBuilder:
    """Construct the system prompt and message list for a chat turn."""

    APP_HEADER = (
        "You are a helpful financial assistant that can query a user's"
        " financial database. You have access to the following data models:"
    )

    def __init__(self, config: Optional[ChatConfig] = None):
        self.config = config or chat_config

    def build_system_prompt(self) -> str:
        """Build the system prompt with the data models and directive contract."""

        chart_rules = (
            "For CHART type, choose the appropriate chartType:\n"
            '- "line": for time series data (use with groupBy: "date")\n'
            '- "bar": for comparing categories or groups side-by-side\n'
            '- "pie" or "donut": for proportions of categories, e.g. "expenses by category as pie chart",'
            ' "breakdown by type", "distribution of investments"\n'
            '- If the user asks for a pie, donut or circular chart, or for proportions, percentages,'
            ' a breakdown or a distribution, use chartType "pie" or "donut"'
        )

        return (
            f"{self.APP_HEADER}\n\n"
            f"{DATA_MODELS}\n\n"
            "When a user asks a question:\n"
            "1. Understand what data they want to see\n"
            "2. Decide whether the response should be TEXT (summaries, insights, simple answers),"
            " TABLE (structured rows and columns) or CHART (time series, comparisons, distributions)\n\n"
            f"{chart_rules}\n\n"
            "For database queries, include exactly one JSON block in this format"
            " (filters are optional, chartType is required when queryType is CHART):\n"
            f"{DIRECTIVE_CONTRACT}\n"
            'For investments, use groupBy: "type" to group by investment type.\n\n'
            "After the JSON, provide a natural language response explaining the data.\n"
            "Always ensure queries are scoped to the user's own data."
            " Be helpful and provide insights when appropriate."
        )

    def build_messages(
        self,
        history: Iterable[Dict[str, str]],
        message: str,
    ) -> List[Dict[str, str]]:
        """System prompt, then the most recent history, then the new user message."""

        limit = self.config.max_conversation_history
        recent = list(history)[-limit:] if limit > 0 else []
        messages = [{"role": "system", "content": self.build_system_prompt()}]
        messages.extend(
            {"role": item["role"].lower(), "content": item["content"]}
            for item in recent
            if item.get("content")
        )
        messages.append({"role": "user", "content": message})
        return messages


__all__ = ["PromptBuilder"]
