from helpdesk_chatbot.domain.catalog import ChatbotFlow
from helpdesk_chatbot.domain.models import TriggerType

# ==============================================================================
# FLOW DEFINITIONS
# ==============================================================================

# --- Main menu: greets every new conversation that matches no keyword flow ---
welcome_definition = {
    "version": "1",
    "entryNodeId": "welcome",
    "nodes": [
        {
            "id": "welcome",
            "type": "message",
            "content": "Hello! Thanks for contacting our support.",
            "next": "menu",
        },
        {
            "id": "menu",
            "type": "question",
            "content": "How can we help you today?",
            "storeField": "topic",
            "retryMessage": "Please answer with the number of one of the options.",
            "options": [
                {"value": "billing", "label": "Billing and invoices", "keywords": ["invoice", "payment"], "next": "ask_document"},
                {"value": "technical", "label": "Technical support", "keywords": ["error", "bug"], "next": "ask_email"},
                {"value": "agent", "label": "Talk to an agent", "keywords": ["human", "person"], "next": "to_agent"},
            ],
        },
        {
            "id": "ask_document",
            "type": "input",
            "content": "Please send the number of your invoice.",
            "field": "invoice_number",
            "validation": {"type": "number", "message": "The invoice number only has digits."},
            "next": "billing_done",
        },
        {
            "id": "billing_done",
            "type": "transfer",
            "message": "Thanks! Our billing team will continue from here.",
            "queueId": "billing",
        },
        {
            "id": "ask_email",
            "type": "input",
            "content": "What is the email address of your account?",
            "field": "email",
            "validation": {"type": "email"},
            "next": "describe",
        },
        {
            "id": "describe",
            "type": "input",
            "content": "Describe the problem in a few words.",
            "field": "problem",
            "validation": {"type": "text", "minLength": 10},
            "next": "to_agent",
        },
        {
            "id": "to_agent",
            "type": "transfer",
            "message": "One moment, an agent will answer you shortly.",
        },
    ],
}

# --- Opt-out: started when the first message mentions cancelling ---
cancellation_definition = {
    "version": "1",
    "entryNodeId": "confirm",
    "nodes": [
        {
            "id": "confirm",
            "type": "question",
            "content": "Do you want to cancel your subscription?",
            "storeField": "cancel",
            "options": [
                {"value": "yes", "label": "Yes", "keywords": ["sim", "si"], "next": "reason"},
                {"value": "no", "label": "No", "next": "kept"},
            ],
        },
        {
            "id": "reason",
            "type": "input",
            "content": "Sorry to see you go. Could you tell us why?",
            "field": "cancel_reason",
            "next": "cancel_agent",
        },
        {
            "id": "cancel_agent",
            "type": "transfer",
            "message": "An agent will confirm the cancellation with you.",
        },
        {
            "id": "kept",
            "type": "end",
            "content": "Great! Your subscription stays active.",
        },
    ],
}

# ==============================================================================
# FLOW CATALOG
# ==============================================================================

welcome_flow = ChatbotFlow(
    id="00000000-0000-0000-0000-000000000001",
    name="Welcome menu",
    description="Main menu for new conversations.",
    is_primary=True,
    trigger_type=TriggerType.DEFAULT,
    entry_node_id="welcome",
    definition=welcome_definition,
    schedule={
        "enabled": True,
        "timezone": "America/Sao_Paulo",
        "windows": [{"days": [1, 2, 3, 4, 5], "start": "08:00", "end": "18:00"}],
        "fallbackMessage": "Our team is available Monday to Friday, 8am to 6pm.",
    },
)

cancellation_flow = ChatbotFlow(
    id="00000000-0000-0000-0000-000000000002",
    name="Cancellation",
    trigger_type=TriggerType.KEYWORD,
    keywords=["cancel", "cancelar"],
    entry_node_id="confirm",
    definition=cancellation_definition,
)

SAMPLE_FLOWS = {
    welcome_flow.id: welcome_flow,
    cancellation_flow.id: cancellation_flow,
}
