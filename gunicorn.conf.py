import os

# Workers
workers = int(os.getenv("WEB_CONCURRENCY", "2"))

# Bind
bind = f"0.0.0.0:{os.getenv('PORT', '3000')}"

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Timeout
timeout = 60
