from datetime import datetime
from html import escape
from typing import Optional
from urllib.parse import quote

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from db_manager import utc_now


class EmailService:
    """Sends transactional email through Brevo; disabled without credentials"""

    def __init__(self, api_key: Optional[str], from_email: Optional[str],
                 from_name: str = "TECH-PRO AI", app_url: str = "http://localhost:8080"):
        self.from_email = from_email
        self.from_name = from_name
        self.app_url = app_url.rstrip("/")
        self.enabled = bool(api_key and from_email)

        self.configuration = sib_api_v3_sdk.Configuration()
        if api_key:
            self.configuration.api_key['api-key'] = api_key

        if self.enabled:
            print(f"✅ Email service configured (sender: {from_email})")
        else:
            print("⚠️  Email configuration not found. Email features will be disabled.")

    def send_email(self, to_email: str, subject: str, html: str, name: Optional[str] = None) -> bool:
        """Send one email, True when the provider accepted it"""
        if not self.enabled:
            print(f"⚠️  Email service not configured. Skipping email to {to_email}")
            return False

        try:
            api_instance = sib_api_v3_sdk.TransactionalEmailsApi(
                sib_api_v3_sdk.ApiClient(self.configuration)
            )
            recipient = {"email": to_email}
            if name:
                recipient["name"] = name

            send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
                to=[recipient],
                sender={"email": self.from_email, "name": self.from_name},
                subject=subject,
                html_content=html
            )
            api_instance.send_transac_email(send_smtp_email)
            print(f"✅ Email sent to {to_email}")
            return True

        except ApiException as e:
            print(f"❌ Brevo API error: {e}")
            return False
        except Exception as e:
            print(f"❌ Error sending email: {e}")
            return False

    def login_link(self, email: str) -> str:
        return f"{self.app_url}/A3Login.html?verified=true&email={quote(email, safe='')}"

    def verify_link(self, token: str) -> str:
        return f"{self.app_url}/api/users/verify/{token}"

    def send_verification_email(self, to_email: str, first_name: str, token: str,
                                now: Optional[datetime] = None) -> bool:
        """Send the welcome email with the verification and login links"""
        now = now or utc_now()
        registered = now.strftime("%B %d, %Y")
        year = now.year

        html = f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
            <title>Email Verification</title>
        </head>
        <body style="margin: 0; padding: 0; font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #f8fafc;">
            <table role="presentation" style="width: 100%; border-collapse: collapse; background-color: #f8fafc; padding: 40px 0;">
                <tr>
                    <td align="center">
                        <table role="presentation" style="max-width: 600px; width: 100%; border-collapse: collapse; background-color: #ffffff; border-radius: 16px; overflow: hidden;">
                            <tr>
                                <td style="background: linear-gradient(135deg, #3b82f6 0%, #6366f1 100%); padding: 40px 30px; text-align: center;">
                                    <h1 style="margin: 0; color: #ffffff; font-size: 32px; font-weight: 900;">🚀 TECH-PRO AI</h1>
                                </td>
                            </tr>
                            <tr>
                                <td style="padding: 50px 40px;">
                                    <h2 style="margin: 0 0 20px; color: #1e293b; font-size: 28px;">Welcome, {escape(first_name)}! 👋</h2>
                                    <p style="margin: 0 0 25px; color: #475569; font-size: 16px; line-height: 1.6;">
                                        Thank you for joining <strong>TECH-PRO AI</strong>. Please confirm your email address to activate your account.
                                    </p>
                                    <table role="presentation" style="width: 100%; border-collapse: collapse; margin: 30px 0;">
                                        <tr>
                                            <td align="center">
                                                <a href="{self.verify_link(token)}" style="display: inline-block; padding: 16px 36px; background: linear-gradient(135deg, #3b82f6 0%, #6366f1 100%); color: #ffffff; text-decoration: none; border-radius: 12px; font-weight: 700; font-size: 16px;">
                                                    ✨ Verify Email &amp; Login
                                                </a>
                                            </td>
                                        </tr>
                                    </table>
                                    <div style="background: #eff6ff; border-left: 4px solid #3b82f6; padding: 20px; border-radius: 8px; margin: 30px 0;">
                                        <p style="margin: 0 0 10px; color: #1e40af; font-weight: 700; font-size: 14px;">📧 Your Account Details</p>
                                        <p style="margin: 0; color: #1e40af; font-size: 14px; line-height: 1.6;">
                                            <strong>Email:</strong> {escape(to_email)}<br>
                                            <strong>Registration Date:</strong> {registered}
                                        </p>
                                    </div>
                                    <p style="margin: 30px 0 0; color: #64748b; font-size: 14px; line-height: 1.6;">
                                        Already verified? <a href="{self.login_link(to_email)}" style="color: #3b82f6;">Log in here</a>.
                                        If you didn't create this account, please ignore this email.
                                    </p>
                                </td>
                            </tr>
                            <tr>
                                <td style="background-color: #f8fafc; padding: 30px 40px; border-top: 1px solid #e2e8f0;">
                                    <p style="margin: 0; color: #94a3b8; font-size: 12px; text-align: center;">
                                        © {year} TECH-PRO AI Inc. All rights reserved.
                                    </p>
                                </td>
                            </tr>
                        </table>
                    </td>
                </tr>
            </table>
        </body>
        </html>
        """

        return self.send_email(
            to_email,
            "🎓 Welcome to TECH-PRO AI - Verify Your Email",
            html,
            name=first_name
        )
