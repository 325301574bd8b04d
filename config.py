import os

# Environment/config
PORT = int(os.getenv("PORT", "4000"))
JWT_SECRET = os.getenv("JWT_SECRET", "demo_secret_key")
JWT_ALG = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SEED_ON_STARTUP = os.getenv("SEED_ON_STARTUP", "true").lower() == "true"
