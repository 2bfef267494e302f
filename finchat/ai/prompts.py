"""System prompts for the intent model."""

from __future__ import annotations

SUPPORTED_ACTIONS: tuple[str, ...] = (
    "add_expense",
    "add_income",
    "show_expenses",
    "list_transactions",
    "edit_transaction",
    "delete_transaction",
    "show_report",
    "list_categories",
    "create_installment",
    "delete_installment",
    "view_future_commitments",
    "set_budget",
    "show_budget",
    "help",
    "logout",
    "unknown",
)

INTENT_SYSTEM_PROMPT = """\
You interpret chat messages sent to a personal-finance assistant used mostly in Brazilian Portuguese.
Return ONLY a JSON object, no prose, with this shape:

{{
  "action": one of {actions},
  "confidence": number between 0 and 1,
  "entities": {{
    "amount": number, "type": "expense" | "income", "category": string,
    "description": string, "date": "YYYY-MM-DD", "payment_method": string,
    "installments": integer, "first_payment_date": "YYYY-MM-DD",
    "transaction_id": string, "month": integer, "year": integer, "is_default": boolean,
    "transactions": [ {{ same fields as above for each item }} ]
  }},
  "pattern": {{ "regex": string }} | null
}}

Rules:
- Omit entity fields you cannot infer. Amounts use a dot as decimal separator.
- "transactions" is only used when the message lists more than one transaction.
- Purchases split into installments ("600 em 3x", "parcelado em 9 vezes") are create_installment.
- set_budget needs amount and category; is_default is true when the budget is fixed for every month
  ("orçamento fixo", "todo mês"). Without is_default, month and year pick the budget month.
- "pattern.regex" must be a Python regular expression that matches messages phrased like this one,
  with named groups (?P<amount>...), (?P<category>...) or (?P<description>...) for the variable parts.
  Use null when the message is too specific to generalize.

Today is {today}.
The user's categories: {categories}.
The user's payment methods: {payment_methods}.
"""

CORRECTION_SYSTEM_PROMPT = """\
The assistant previously interpreted the message below and the user is now correcting it.
Produce the corrected interpretation using the same JSON shape as before.

Original message: {original_message}
Previous interpretation: {previous}
"""
