import os

# Configurações globais de ambiente
SERVER_NAME = os.getenv("SERVER_NAME")
BIND_ADDR = os.getenv("BIND_ADDR", "127.0.0.1:9999")
REGISTRY_FILE = os.getenv("REGISTRY_FILE", "db.json")
DEBUG_MODE = os.getenv("DEBUG_MODE", "False").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Entrega de mensagens no Twist
DELIVERY_TIMEOUT_SECONDS = float(os.getenv("DELIVERY_TIMEOUT_SECONDS", "10"))
DELIVERY_MAX_WORKERS = int(os.getenv("DELIVERY_MAX_WORKERS", "8"))

# Glifos usados nas mensagens
ALARM_EMOJI = "🚨"
RESOLVED_EMOJI = "✅"
UNKNOWN_SERVICE = "unknown"

# Textos fixos do fluxo de instalação
GREETING_MESSAGE = "Hello from the other side."
CALLBACK_PATH = "/alerts/webhooks/{install_id}"
CONFIGURE_REPLY = """
Twist configuration successful.

# GCP Notification Channel
Webhook URL: {callback_url}

A hello message has been sent to your thread and should appear per integration settings.

GCP Notifications will be show up in the thread as per integration settings.
"""
