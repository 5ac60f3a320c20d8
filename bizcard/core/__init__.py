"""
Core utilities shared across the business card app: configuration,
password hashing, CSRF, rate limiting, the SMTP mailer and URL helpers.
"""
