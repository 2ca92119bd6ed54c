import os
import logging
import requests

MAILGUN_API_KEY = os.getenv("MAILGUN_API_KEY")
MAILGUN_DOMAIN = os.getenv("MAILGUN_DOMAIN")
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Mittal and Co.")
EMAIL_FROM_ADDRESS = os.getenv(
    "EMAIL_FROM_ADDRESS",
    f"postmaster@{MAILGUN_DOMAIN}" if MAILGUN_DOMAIN else None,
)

logger = logging.getLogger(__name__)


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str | None = None,
) -> bool:
    """
    Send email via Mailgun HTTP API.

    Never raises. Returns True on success, False on failure; callers decide
    whether a failed send fails the request.
    """

    if not MAILGUN_API_KEY or not MAILGUN_DOMAIN or not EMAIL_FROM_ADDRESS:
        logger.error(
            "Mailgun not configured | domain=%s from=%s",
            MAILGUN_DOMAIN,
            EMAIL_FROM_ADDRESS,
        )
        return False

    data = {
        "from": f"{EMAIL_FROM_NAME} <{EMAIL_FROM_ADDRESS}>",
        "to": to_email,
        "subject": subject,
        "html": html_content,
    }

    if text_content:
        data["text"] = text_content

    try:
        response = requests.post(
            f"https://api.mailgun.net/v3/{MAILGUN_DOMAIN}/messages",
            auth=("api", MAILGUN_API_KEY),
            data=data,
            timeout=10,
        )

        if response.status_code != 200:
            logger.error(
                "Mailgun email failed | to=%s | status=%s | response=%s",
                to_email,
                response.status_code,
                response.text,
            )
            return False

        return True

    except requests.RequestException as e:
        logger.exception(
            "Mailgun email exception | to=%s | error=%s",
            to_email,
            str(e),
        )
        return False


def _code_email_html(heading: str, intro: str, code: str, footer: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #c6aa55;">{EMAIL_FROM_NAME}</h1>
      <h2 style="color: #2e3f47;">{heading}</h2>
      <p>{intro}</p>
      <div style="border: 2px dashed #c6aa55; padding: 20px; text-align: center;">
        <h1 style="letter-spacing: 8px;">{code}</h1>
      </div>
      <p>This code will expire in <strong>10 minutes</strong>. {footer}</p>
    </div>
    """


def send_verification_code_email(to_email: str, code: str) -> bool:
    return send_email(
        to_email=to_email,
        subject=f"Your Verification Code is {code} - {EMAIL_FROM_NAME}",
        html_content=_code_email_html(
            "Your Verification Code",
            "Use the verification code below to complete your registration:",
            code,
            "If you didn't request this code, please ignore this email.",
        ),
        text_content=f"Your verification code is {code}. It expires in 10 minutes.",
    )


def send_password_reset_code_email(to_email: str, code: str) -> bool:
    return send_email(
        to_email=to_email,
        subject=f"Your Password Reset Code is {code} - {EMAIL_FROM_NAME}",
        html_content=_code_email_html(
            "Password Reset Code",
            "You requested to reset your password. Use the code below to proceed:",
            code,
            "If you didn't request this password reset, please ignore this email.",
        ),
        text_content=f"Your password reset code is {code}. It expires in 10 minutes.",
    )
