import os

# AWS
AWS_REGION = os.getenv("AWS_REGION", "us-east-2")
SESSIONS_TABLE = os.getenv("SESSIONS_TABLE", "NegotiationSessions")

# Bedrock model used for both offer reading and the Retailer's replies
BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "us.anthropic.claude-3-haiku-20240307-v1:0")
ANTHROPIC_VERSION = "bedrock-2023-05-31"

# API
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# How many recent messages the dialogue prompt sees
HISTORY_WINDOW = 6
