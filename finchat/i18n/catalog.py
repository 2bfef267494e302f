"""Localized reply catalog.

Entries are ``str.format`` templates keyed by locale and message key.
Unknown locales and keys missing from a locale fall back to pt-br.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from finchat.constants import DEFAULT_LOCALE

_PT_BR: dict[str, str] = {
    # Authentication / authorization
    "login_prompt": "🔐 Para começar, adicione o seu número no seu perfil do app.",
    "already_authenticated": "✅ Você já está conectado! Pode mandar suas despesas.",
    "logout_success": "👋 Você foi desconectado com sucesso!",
    "permission_denied": (
        "🔒 Você não tem permissão para {action}. Entre em contato com o proprietário "
        "da conta para ajustar suas permissões."
    ),
    # Generic
    "unknown_command": '❓ Desculpe, não entendi. Digite "ajuda" para ver os comandos disponíveis.',
    "generic_error": "❌ Ocorreu um erro. Por favor, tente novamente.",
    "image_unsupported": "📸 Ainda não consigo ler imagens por aqui. Me mande os dados em texto, por favor.",
    "ai_processing_error": (
        "❌ Erro no processamento via IA: {error}\n\n"
        "💡 Tente usar um comando explícito como: /add 50 comida"
    ),
    "ai_suffix": (
        "\n\n🤖 Processado via IA - padrão salvo para o futuro!\n\n"
        "💡 Se algo estiver errado, me diga como deveria ser!"
    ),
    "correction_applied": "✅ Correção aplicada!",
    "correction_not_understood": "❌ Não consegui entender sua correção. Tente ser mais específico.",
    "help": (
        "👋 Sou seu assistente financeiro. Fale comigo naturalmente!\n\n"
        "💰 \"Gastei 50 reais em comida\"\n"
        "💰 \"Recebi 2000 de salário\"\n"
        "💳 \"Gastei 600 em 3x no celular\"\n"
        "📈 \"Relatório deste mês\"\n"
        "📊 \"Orçamento de 300 para transporte\"\n"
        "📁 \"Minhas categorias\"\n\n"
        "Comandos: /add, /list, /report, /categories, /budget, /parcelamentos, /help"
    ),
    "help_add": (
        "/add <valor> <categoria> [dd/mm] [descrição] [método]\n"
        "Ex: /add 50 comida 15/10 almoço pix"
    ),
    "help_list": "/list [categories|transactions]\nSem argumento mostra suas despesas recentes.",
    "help_report": "/report [mês] [ano] [categoria]\nEx: /report outubro 2024",
    "help_categories": "/categories\nLista as categorias disponíveis.",
    "help_parcelamentos": "/parcelamentos\nMostra seus compromissos futuros com parcelamentos.",
    "help_budget": (
        "/budget [categoria] [valor] [fixo]\nSem argumento mostra seus orçamentos do mês.\n"
        "Ex: /budget transporte 300"
    ),
    # Transactions
    "expense_added": (
        "✅ Despesa adicionada!\n💵 Valor: {amount}\n📁 Categoria: {category}\n"
        "📅 Data: {date}\n🆔 ID: {transaction_id}"
    ),
    "income_added": (
        "✅ Receita adicionada!\n💰 Valor: {amount}\n📁 Categoria: {category}\n"
        "📅 Data: {date}\n🆔 ID: {transaction_id}"
    ),
    "expense_error": "❌ Não consegui adicionar a despesa. Tente novamente.",
    "invalid_amount": "❌ Valor inválido. Por favor, use um número válido (ex: R$50 ou 50 reais).",
    "no_category": "Sem categoria",
    "transactions_header": "📋 Suas últimas transações:",
    "transaction_line": "• {transaction_id} | {date} | {amount} | {category} {description}",
    "no_transactions": "📭 Nenhuma transação encontrada para este período.",
    "transaction_deleted": "✅ Transação {transaction_id} removida com sucesso!",
    "transaction_updated": "✅ Transação {transaction_id} atualizada com sucesso!",
    "transaction_not_found": "❌ Transação {transaction_id} não encontrada. Verifique o ID e tente novamente.",
    "correction_no_changes": (
        '❌ Nenhuma alteração especificada. Use "era R$ X" ou "era categoria Y" '
        "para especificar as mudanças."
    ),
    "correction_missing_id": (
        "❌ ID da transação não encontrado. Use o ID de 6 caracteres que aparece "
        "quando você adiciona uma transação."
    ),
    # Batch
    "batch_header": "📋 Processando {count} transações...",
    "batch_item": "{index}/{total} - {result}",
    "batch_item_failed": "{index}/{total} - ❌ Erro ao processar: {description}",
    "batch_item_default": "transação",
    "batch_summary": "\n✅ Concluído! {succeeded}/{total} transações processadas com sucesso.",
    # Duplicates
    "duplicate_blocked": (
        "🚫 Transação bloqueada automaticamente!\n\n{reason}\n\n"
        "💡 Se não for duplicata, tente novamente com mais detalhes."
    ),
    "duplicate_warning": (
        "⚠️ Possível duplicata detectada!\n\n{reason}\n\nConfiança: {confidence}%\n\n"
        '💡 Se não for duplicata, confirme digitando "confirmar" ou "sim".\n'
        "🆔 Duplicate ID: {duplicate_id}"
    ),
    "duplicate_reason_similar": "Possível duplicata: {transaction}",
    "duplicate_reason_blocked": "Transação muito similar encontrada: {transaction}",
    "duplicate_confirmed": "✅ Transação confirmada e adicionada!",
    "duplicate_cancelled": "👍 Ok, não adicionei a transação.",
    "duplicate_invalid": '❌ Confirmação não reconhecida. Use "sim", "confirmar" ou "ok" para prosseguir.',
    # Reports / categories
    "report_header": "📈 Relatório - {month:02d}/{year}",
    "report_summary": "💰 Receitas: {income}\n💸 Despesas: {expenses}\n📊 Saldo: {balance}",
    "report_category_line": "  • {category}: {amount}",
    "categories_header": "📁 Categorias disponíveis:",
    "category_line": "• {name}",
    "no_categories": "📁 Nenhuma categoria cadastrada.",
    # Budgets
    "budget_set": (
        "✅ Orçamento definido!\n📁 Categoria: {category}\n💰 Valor: {amount}\n📅 Período: {month:02d}/{year}"
    ),
    "default_budget_set": (
        "✅ Orçamento fixo definido!\n📁 Categoria: {category}\n💰 Valor: {amount}\n"
        "🔄 Este valor será aplicado automaticamente todo mês."
    ),
    "budget_missing_fields": (
        '❌ Informe o valor e a categoria do orçamento. Ex: "orçamento de 300 para transporte"'
    ),
    "budget_category_not_found": '❌ Categoria "{category}" não encontrada.',
    "no_budgets": "📊 Você ainda não tem orçamentos definidos.",
    "budgets_header": "📊 Orçamentos - {month:02d}/{year}",
    "budget_line": (
        "📁 {category}{marker}\n   Orçamento: {amount}\n   Gasto: {spent} ({percentage}%)\n   Restante: {remaining}"
    ),
    "budget_status_exceeded": "   ⚠️ Orçamento excedido!",
    "budget_status_warning": "   ⚡ Atenção: perto do limite!",
    "budget_status_on_track": "   ✅ No caminho certo",
    "budget_status_good": "   💪 Muito bem!",
    "budgets_default_legend": "🔄 Orçamentos com 🔄 são fixos e aplicados automaticamente todo mês",
    # Credit mode
    "credit_mode_prompt": (
        "Como você quer acompanhar este cartão?\n\n"
        "1️⃣ Modo Crédito\n- Acompanhe parcelamentos (3x, 12x, etc)\n"
        "- Orçamento mensal personalizado\n- Lembrete de fechamento da fatura\n\n"
        "2️⃣ Modo Simples\n- Trata como débito\n- Sem recursos de cartão de crédito\n\n"
        "Responda 1 ou 2"
    ),
    "credit_mode_confirmed_credit": (
        "✅ Modo Crédito ativado! Você pode adicionar parcelamentos e acompanhar sua fatura."
    ),
    "credit_mode_confirmed_simple": "✅ Modo Simples ativado! Este cartão será tratado como débito.",
    "credit_mode_invalid": "Por favor, responda 1 para Modo Crédito ou 2 para Modo Simples.",
    "credit_mode_no_pending": (
        "Não encontrei uma transação pendente. Por favor, adicione sua despesa novamente."
    ),
    "credit_mode_cancelled": "❌ Ok, não adicionei a transação.",
    "credit_mode_update_failed": "Algo deu errado. Por favor, tente novamente.",
    "credit_mode_transaction_failed": (
        "Modo atualizado, mas não consegui criar a transação. Por favor, adicione a despesa novamente."
    ),
    # Installment creation
    "installment_created_title": "✅ Parcelamento criado: {description}",
    "installment_created_total": "💰 Total: {total} em {count}x de {monthly}",
    "installment_first_payment": "📅 Primeira parcela: {date}",
    "installment_last_payment": "📅 Última parcela: {date}",
    "installment_created_help": "Use /parcelamentos para ver todos os seus parcelamentos ativos.",
    "installment_default_description": "Parcelamento",
    "installment_needs_credit_mode": (
        "Para usar parcelamentos, você precisa ativar o Modo Crédito em um cartão de crédito."
    ),
    "installment_select_card": "Qual cartão você usou?\n\n{options}\n\nResponda com o número do cartão.",
    "installment_invalid_card": "Por favor, escolha um cartão válido:\n\n{options}",
    "installment_no_pending": "Não encontrei um parcelamento pendente. Por favor, envie a compra novamente.",
    "installment_cancelled": "❌ Parcelamento cancelado.",
    "installment_clarify_amount": "Qual foi o valor total da compra?",
    "installment_clarify_installments": "Em quantas parcelas?",
    "installment_amount_positive": "O valor deve ser maior que zero",
    "installment_count_range": "Número de parcelas deve ser entre 1 e 60",
    "installment_error": "❌ Erro ao criar parcelamento. Tente novamente mais tarde.",
    # Installment deletion
    "delete_list_prompt": "Qual parcelamento você quer deletar?",
    "delete_list_item": "{number}. {description} - {total} em {count}x",
    "delete_list_status": "   • {paid} pagas, {pending} pendentes",
    "delete_list_footer": 'Responda com o número (ex: 1) ou "cancelar"',
    "delete_no_active": "Você não tem parcelamentos ativos.",
    "delete_confirmation": (
        "⚠️ Confirme a Deleção\n\nVocê vai deletar permanentemente:\n"
        "💳 {description}\n💰 {total} em {count}x\n\n"
        "Status:\n• {paid} parcelas pagas ({paid_amount})\n"
        "• {pending} parcelas pendentes ({pending_amount})\n\n"
        "⚠️ O que vai acontecer:\n• Plano removido permanentemente\n"
        "• {pending} parcelas pendentes deletadas\n"
        "• {paid} transações pagas preservadas (sem vínculo)\n• Ação irreversível"
    ),
    "delete_confirm_prompt": 'Confirmar deleção? Responda: "confirmar" ou "cancelar"',
    "delete_success": (
        "✅ Parcelamento Deletado\n\n{description} removido permanentemente.\n\n📊 Impacto:\n"
        "• {pending} parcelas pendentes deletadas\n• {paid} transações pagas preservadas\n"
        "• {pending_amount} removidos dos compromissos futuros"
    ),
    "delete_cancelled": "❌ Deleção cancelada.",
    "delete_invalid_selection": 'Número inválido. Por favor, escolha entre {numbers} ou "cancelar".',
    "delete_error": "❌ Erro ao deletar parcelamento. Tente novamente mais tarde.",
    "delete_not_found": "❌ Parcelamento não encontrado.",
    # Future commitments
    "commitments_title": "📊 Compromissos Futuros",
    "commitments_month": "📅 {month:02d}/{year}: {amount} ({count} parcelas)",
    "commitments_item": "  • {description}: {current}/{total} - {amount}",
    "commitments_empty": (
        "📊 Compromissos Futuros\n\nVocê não tem parcelamentos ativos.\n\n"
        'Para criar um parcelamento, envie:\n"gastei 600 em 3x no celular"'
    ),
}

_EN: dict[str, str] = {
    "login_prompt": "🔐 To get started, add your number to your profile in the app.",
    "already_authenticated": "✅ You are already connected! Go ahead and send your expenses.",
    "logout_success": "👋 You have been logged out.",
    "permission_denied": (
        "🔒 You don't have permission to {action}. Please ask the account owner to adjust "
        "your permissions."
    ),
    "unknown_command": '❓ Sorry, I didn\'t get that. Type "help" to see what I can do.',
    "generic_error": "❌ Something went wrong. Please try again.",
    "image_unsupported": "📸 I can't read images here yet. Please send the details as text.",
    "ai_processing_error": (
        "❌ AI processing error: {error}\n\n"
        "💡 Try an explicit command such as: /add 50 food"
    ),
    "ai_suffix": (
        "\n\n🤖 Processed by AI - pattern saved for next time!\n\n"
        "💡 If something is wrong, tell me how it should be!"
    ),
    "correction_applied": "✅ Correction applied!",
    "correction_not_understood": "❌ I could not understand your correction. Try to be more specific.",
    "help": (
        "👋 I'm your finance assistant. Just talk to me!\n\n"
        "💰 \"Spent 50 on food\"\n💳 \"Spent 600 in 3x on a phone\"\n"
        "📈 \"Report for this month\"\n\n"
        "Commands: /add, /list, /report, /categories, /budget, /parcelamentos, /help"
    ),
    "help_add": "/add <amount> <category> [dd/mm] [description] [method]\nE.g. /add 50 food 15/10 lunch pix",
    "help_list": "/list [categories|transactions]\nWithout arguments shows your recent expenses.",
    "help_report": "/report [month] [year] [category]",
    "help_categories": "/categories\nLists the available categories.",
    "help_parcelamentos": "/parcelamentos\nShows your upcoming installment commitments.",
    "help_budget": "/budget [category] [amount] [fixed]\nWithout arguments shows this month's budgets.",
    "expense_added": (
        "✅ Expense added!\n💵 Amount: {amount}\n📁 Category: {category}\n"
        "📅 Date: {date}\n🆔 ID: {transaction_id}"
    ),
    "income_added": (
        "✅ Income added!\n💰 Amount: {amount}\n📁 Category: {category}\n"
        "📅 Date: {date}\n🆔 ID: {transaction_id}"
    ),
    "expense_error": "❌ I couldn't add the expense. Please try again.",
    "invalid_amount": "❌ Invalid amount. Please use a valid number (e.g. R$50).",
    "no_category": "Uncategorized",
    "transactions_header": "📋 Your latest transactions:",
    "no_transactions": "📭 No transactions found for this period.",
    "transaction_deleted": "✅ Transaction {transaction_id} removed!",
    "transaction_updated": "✅ Transaction {transaction_id} updated!",
    "transaction_not_found": "❌ Transaction {transaction_id} not found. Check the ID and try again.",
    "correction_no_changes": '❌ No change given. Use "was R$ X" or "was category Y".',
    "correction_missing_id": "❌ Transaction ID not found. Use the 6-character ID shown when you add a transaction.",
    "batch_header": "📋 Processing {count} transactions...",
    "batch_item_failed": "{index}/{total} - ❌ Failed to process: {description}",
    "batch_item_default": "transaction",
    "batch_summary": "\n✅ Done! {succeeded}/{total} transactions processed successfully.",
    "duplicate_blocked": (
        "🚫 Transaction blocked automatically!\n\n{reason}\n\n"
        "💡 If it's not a duplicate, try again with more details."
    ),
    "duplicate_warning": (
        "⚠️ Possible duplicate detected!\n\n{reason}\n\nConfidence: {confidence}%\n\n"
        '💡 If it is not a duplicate, reply "confirm" or "yes".\n'
        "🆔 Duplicate ID: {duplicate_id}"
    ),
    "duplicate_reason_similar": "Possible duplicate: {transaction}",
    "duplicate_reason_blocked": "Very similar transaction found: {transaction}",
    "duplicate_confirmed": "✅ Transaction confirmed and added!",
    "duplicate_cancelled": "👍 Ok, I did not add the transaction.",
    "duplicate_invalid": '❌ Confirmation not recognized. Reply "yes", "confirm" or "ok" to proceed.',
    "report_header": "📈 Report - {month:02d}/{year}",
    "report_summary": "💰 Income: {income}\n💸 Expenses: {expenses}\n📊 Balance: {balance}",
    "categories_header": "📁 Available categories:",
    "no_categories": "📁 No categories yet.",
    "budget_set": "✅ Budget set!\n📁 Category: {category}\n💰 Amount: {amount}\n📅 Period: {month:02d}/{year}",
    "default_budget_set": (
        "✅ Fixed budget set!\n📁 Category: {category}\n💰 Amount: {amount}\n"
        "🔄 It applies automatically every month."
    ),
    "budget_missing_fields": '❌ Tell me the budget amount and category. E.g. "budget 300 for transport"',
    "budget_category_not_found": '❌ Category "{category}" not found.',
    "no_budgets": "📊 You have no budgets set yet.",
    "budgets_header": "📊 Budgets - {month:02d}/{year}",
    "budget_line": (
        "📁 {category}{marker}\n   Budget: {amount}\n   Spent: {spent} ({percentage}%)\n   Remaining: {remaining}"
    ),
    "budget_status_exceeded": "   ⚠️ Budget exceeded!",
    "budget_status_warning": "   ⚡ Careful: close to the limit!",
    "budget_status_on_track": "   ✅ On track",
    "budget_status_good": "   💪 Well done!",
    "budgets_default_legend": "🔄 Budgets marked 🔄 are fixed and apply automatically every month",
    "credit_mode_prompt": (
        "How do you want to track this card?\n\n"
        "1️⃣ Credit Mode\n- Track installments (3x, 12x, etc)\n- Statement reminders\n\n"
        "2️⃣ Simple Mode\n- Treated as debit\n\nReply 1 or 2"
    ),
    "credit_mode_confirmed_credit": "✅ Credit Mode enabled! You can now add installments.",
    "credit_mode_confirmed_simple": "✅ Simple Mode enabled! This card will be treated as debit.",
    "credit_mode_invalid": "Please reply 1 for Credit Mode or 2 for Simple Mode.",
    "credit_mode_no_pending": "I couldn't find a pending transaction. Please add your expense again.",
    "credit_mode_cancelled": "❌ Ok, I did not add the transaction.",
    "credit_mode_update_failed": "Something went wrong. Please try again.",
    "credit_mode_transaction_failed": (
        "Mode updated, but I couldn't create the transaction. Please add the expense again."
    ),
    "installment_created_title": "✅ Installment plan created: {description}",
    "installment_created_total": "💰 Total: {total} in {count}x of {monthly}",
    "installment_first_payment": "📅 First payment: {date}",
    "installment_last_payment": "📅 Last payment: {date}",
    "installment_created_help": "Use /parcelamentos to see all your active installment plans.",
    "installment_default_description": "Installment",
    "installment_needs_credit_mode": "To use installments, enable Credit Mode on a credit card first.",
    "installment_select_card": "Which card did you use?\n\n{options}\n\nReply with the card number.",
    "installment_invalid_card": "Please choose a valid card:\n\n{options}",
    "installment_no_pending": "I couldn't find a pending installment. Please send the purchase again.",
    "installment_cancelled": "❌ Installment cancelled.",
    "installment_clarify_amount": "What was the total amount of the purchase?",
    "installment_clarify_installments": "In how many installments?",
    "installment_amount_positive": "The amount must be greater than zero",
    "installment_count_range": "The number of installments must be between 1 and 60",
    "installment_error": "❌ Failed to create the installment plan. Please try again later.",
    "delete_list_prompt": "Which installment plan do you want to delete?",
    "delete_list_status": "   • {paid} paid, {pending} pending",
    "delete_list_footer": 'Reply with the number (e.g. 1) or "cancel"',
    "delete_no_active": "You have no active installment plans.",
    "delete_confirmation": (
        "⚠️ Confirm Deletion\n\nYou are about to permanently delete:\n"
        "💳 {description}\n💰 {total} in {count}x\n\n"
        "Status:\n• {paid} paid installments ({paid_amount})\n"
        "• {pending} pending installments ({pending_amount})\n\n"
        "⚠️ What happens:\n• Plan removed permanently\n"
        "• {pending} pending installments deleted\n"
        "• {paid} paid transactions kept (unlinked)\n• This cannot be undone"
    ),
    "delete_confirm_prompt": 'Confirm deletion? Reply "confirm" or "cancel"',
    "delete_success": (
        "✅ Installment Plan Deleted\n\n{description} removed permanently.\n\n📊 Impact:\n"
        "• {pending} pending installments deleted\n• {paid} paid transactions kept\n"
        "• {pending_amount} removed from future commitments"
    ),
    "delete_cancelled": "❌ Deletion cancelled.",
    "delete_invalid_selection": 'Invalid number. Please choose between {numbers} or "cancel".',
    "delete_error": "❌ Failed to delete the installment plan. Please try again later.",
    "delete_not_found": "❌ Installment plan not found.",
    "commitments_title": "📊 Future Commitments",
    "commitments_month": "📅 {month:02d}/{year}: {amount} ({count} installments)",
    "commitments_empty": (
        "📊 Future Commitments\n\nYou have no active installment plans.\n\n"
        'To create one, send:\n"spent 600 in 3x on a phone"'
    ),
}

MESSAGES: dict[str, dict[str, str]] = {
    "pt-br": _PT_BR,
    "en": _EN,
}

# Human-readable names used by permission_denied, keyed by action.
_ACTION_DESCRIPTIONS: dict[str, dict[str, str]] = {
    "pt-br": {
        "add_expense": "adicionar despesas",
        "add_income": "adicionar receitas",
        "show_expenses": "ver despesas",
        "list_transactions": "ver transações",
        "edit_transaction": "editar transações",
        "delete_transaction": "deletar transações",
        "show_report": "ver relatórios",
        "create_installment": "criar parcelamentos",
        "delete_installment": "deletar parcelamentos",
        "view_future_commitments": "ver compromissos futuros",
        "set_budget": "gerenciar orçamentos",
        "show_budget": "ver orçamentos",
    },
    "en": {
        "add_expense": "add expenses",
        "add_income": "add income",
        "show_expenses": "view expenses",
        "list_transactions": "view transactions",
        "edit_transaction": "edit transactions",
        "delete_transaction": "delete transactions",
        "show_report": "view reports",
        "create_installment": "create installment plans",
        "delete_installment": "delete installment plans",
        "view_future_commitments": "view future commitments",
        "set_budget": "manage budgets",
        "show_budget": "view budgets",
    },
}

_DEFAULT_ACTION_DESCRIPTION = {"pt-br": "realizar esta ação", "en": "perform this action"}


def resolve_locale(locale: str | None) -> str:
    if locale and locale.lower() in MESSAGES:
        return locale.lower()
    return DEFAULT_LOCALE


def get_message(key: str, locale: str | None = None, **params: object) -> str:
    """Render message ``key`` for ``locale``. Raises KeyError for unknown keys."""
    table = MESSAGES[resolve_locale(locale)]
    template = table.get(key)
    if template is None:
        template = MESSAGES[DEFAULT_LOCALE][key]
    return template.format(**params) if params else template


def action_description(action: str, locale: str | None = None) -> str:
    loc = resolve_locale(locale)
    return _ACTION_DESCRIPTIONS[loc].get(action, _DEFAULT_ACTION_DESCRIPTION[loc])


def format_currency(value: float | Decimal) -> str:
    """Format a BRL amount: 600 -> 'R$ 600,00'."""
    quantized = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"R$ {quantized:.2f}".replace(".", ",")


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")
