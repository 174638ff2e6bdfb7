"""Public, OTP-gated case status channel."""
