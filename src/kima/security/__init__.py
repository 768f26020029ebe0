"""Transport security policy.

Usage::

    from kima.security import HttpsDecision, check_https

    check_https("Checkout", is_https=False, enforced=False,
                https_controllers={"Checkout"})  # -> HttpsDecision.REDIRECT_HTTPS
"""

from kima.security.https import HttpsDecision, check_https, redirect_for

__all__ = ["HttpsDecision", "check_https", "redirect_for"]
