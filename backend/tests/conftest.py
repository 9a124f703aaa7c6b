import os

# backend.main reads its configuration at import time.
os.environ["PAY_TO_ADDRESS"] = "0xPAYEE"
os.environ["NETWORK"] = "base"
os.environ["VERIFICATION_MODE"] = "permissive"
os.environ["ALLOW_PERMISSIVE_VERIFIER"] = "true"
os.environ["APP_ENV"] = "test"
os.environ.pop("VERIFIER_UNAVAILABLE_STATUS", None)
os.environ.pop("PAYMENT_TIMEOUT_SECONDS", None)
os.environ.pop("ASSET_ADDRESS", None)
