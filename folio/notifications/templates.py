"""
HTML bodies for outgoing email and the small pages served by link endpoints.

Visitor-supplied text is always escaped. The drafted reply body is model
output that is already HTML and is inserted as-is.
"""

from __future__ import annotations

from html import escape


def user_reply_email(reply_html: str, unsubscribe_link: str, trap_link: str | None = None) -> str:
    trap = ""
    if trap_link:
        # Invisible to people, followed by link-scraping bots
        trap = (
            f'<a href="{escape(trap_link)}" style="display:none" '
            f'aria-hidden="true" tabindex="-1">verify</a>'
        )
    return (
        '<div style="font-family: sans-serif; color: #333; line-height: 1.6; max-width: 580px;">'
        f"<div>{reply_html}</div>"
        '<p style="margin-top: 40px; font-size: 12px; color: #aaa;">'
        f'<a href="{escape(unsubscribe_link)}" style="color: #aaa;">Stop emails</a>'
        f"</p>{trap}</div>"
    )


def admin_summary_email(
    *,
    request_type: str,
    name: str,
    email: str | None,
    company: str | None,
    message: str,
    reply_html: str,
    attached_resume: bool,
    admin_link: str,
) -> str:
    return (
        '<div style="font-family: sans-serif; max-width: 600px;">'
        f"<h3>Request: {escape(request_type)}</h3>"
        f"<p><strong>{escape(name)}</strong> &lt;{escape(email or 'No Email')}&gt;<br>"
        f"Company: {escape(company or '-')}</p>"
        f'<h4>Message</h4><blockquote>"{escape(message)}"</blockquote>'
        f"<h4>AI reply (resume attached: {'yes' if attached_resume else 'no'})</h4>"
        f"<div>{reply_html}</div>"
        f'<p><a href="{escape(admin_link)}">Manage Access</a></p>'
        "</div>"
    )


def return_link_email(return_link: str, owner_name: str) -> str:
    return (
        '<div style="font-family: sans-serif; color: #333;">'
        "<p>Hey,</p>"
        "<p>Just confirming that <b>I've stopped sending automated emails</b> to this address.</p>"
        "<p>If you ever want to see my updates or access the portfolio again, use this link:</p>"
        f'<p><a href="{escape(return_link)}">Resume Access / Restart Emails</a></p>'
        f"<p>Best,<br>{escape(owner_name)}</p>"
        "</div>"
    )


def honeypot_alert_email(email: str, admin_link: str) -> str:
    return (
        '<div style="font-family: sans-serif;">'
        "<h3>Honeypot triggered</h3>"
        f"<p>A trap link issued to <b>{escape(email)}</b> was followed. "
        "The address has been blacklisted and blocked.</p>"
        f'<p><a href="{escape(admin_link)}">Review users</a></p>'
        "</div>"
    )


def admin_link_email(admin_link: str) -> str:
    return (
        '<div style="font-family: sans-serif;">'
        "<p>Your admin link expired. Here is a fresh one (valid for 15 minutes):</p>"
        f'<p><a href="{escape(admin_link)}">Open admin panel</a></p>'
        "</div>"
    )


def unsubscribe_page(email: str, return_link: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: sans-serif; text-align: center;\">"
        "<h1>Apologies!</h1>"
        f"<p>I'll stop emailing <b>{escape(email)}</b>.</p>"
        "<p>Mistake? Use the button below (or the link I just emailed you) to restart anytime.</p>"
        f'<p><a href="{escape(return_link)}">Re-enable</a></p>'
        "</body></html>"
    )


def whitelist_page(email: str) -> str:
    return (
        "<!DOCTYPE html><html><body style=\"font-family: sans-serif; text-align: center;\">"
        "<h1>Welcome back!</h1>"
        f"<p>I've re-enabled access for <b>{escape(email)}</b>.</p>"
        "<p>You can close this tab.</p>"
        "</body></html>"
    )
