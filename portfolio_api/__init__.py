"""portfolio_api — Lambda backend for the portfolio site.

Provides:
    - Admin CRUD over experience / project / education content stored on S3
    - Per-section index maintenance (content/{section}/index.json)
    - Public read views with per-section field allowlists
    - Contact form submission (DynamoDB + SES notification)
    - Presigned media upload URLs
    - Cognito bearer-token authentication

Entry point: ``portfolio_api.lambda_function.lambda_handler``.
"""

__version__ = "1.0.0"
