"""
Coupon email copy.

Restaurants on the `assist` tone get an AI-written opening paragraph; on
`manual`, or whenever generation fails, a deterministic template is used.
"""
from typing import List, Optional, Sequence

from restostar.models.review import LIKED_CATEGORIES
from restostar.services.mailer import EmailMessage
from restostar.services.text_generation import TextGenerationClient


def _join_with_and(items: List[str]) -> str:
    if len(items) <= 1:
        return "".join(items)
    return ", ".join(items[:-1]) + " and " + items[-1]


def generic_positive_message(restaurant_name: str, liked_categories: Optional[Sequence[str]]) -> str:
    liked: List[str] = []
    for category in liked_categories or []:
        if category in LIKED_CATEGORIES and category not in liked:
            liked.append(category)
    not_liked = [c for c in LIKED_CATEGORIES if c not in liked]

    if not liked:
        return (
            f"Thanks for visiting {restaurant_name} and for your wonderful review! "
            "We're glad you enjoyed your experience."
        )

    message = f"We're thrilled that you enjoyed our {_join_with_and(liked).lower()}!"

    # Only call out the misses when there are one or two of them
    if 0 < len(not_liked) <= 2:
        missed = " and ".join(not_liked).lower()
        message += f" We'll keep working to make the {missed} even better for your next visit."

    return message


def generic_negative_message(restaurant_name: str, customer_feedback: Optional[str]) -> str:
    feedback = (customer_feedback or "").lower()

    if "cold" in feedback:
        return (
            f"We're sorry that your food was cold when you received it at {restaurant_name}. "
            "That's not the experience we want for you, and we're taking steps to fix it."
        )
    if "wait" in feedback or "slow" in feedback:
        return (
            f"We apologize for the long wait at {restaurant_name}. "
            "We understand how frustrating that can be and are working to improve our service speed."
        )
    if "rude" in feedback or "unfriendly" in feedback or "staff" in feedback:
        return (
            f"We're sorry about the service experience at {restaurant_name}. "
            "Your feedback has been shared with our team and we're committed to doing better."
        )

    return (
        f"We're truly sorry to hear about your experience at {restaurant_name}. "
        "Your feedback means a lot to us, and we're committed to making things right."
    )


def _positive_prompt(restaurant_name: str, liked_categories: Optional[Sequence[str]], reward: Optional[str]) -> str:
    liked = ", ".join(liked_categories or []) or "(none selected)"
    lines = [
        "Write a grateful response to a customer who left a positive review.",
        "Reference the specific things they liked. If they didn't select everything, "
        "briefly mention the restaurant's commitment to improving the rest.",
        "Keep it brief (2-3 sentences), genuine, and avoid corporate-speak.",
        "Do NOT include subject line, greeting, or signature - just the body message.",
        "",
        f"Restaurant: {restaurant_name}",
        f"Categories the customer liked: {liked}",
    ]
    if reward:
        lines.append(f"Thank-you coupon being offered: {reward}")
    return "\n".join(lines)


def _negative_prompt(restaurant_name: str, customer_feedback: Optional[str], reward: Optional[str]) -> str:
    lines = [
        "Write a sympathetic response to a customer who had a negative experience.",
        "Keep it brief (2-3 sentences), genuine, and avoid corporate-speak.",
        "Do NOT include subject line, greeting, or signature - just the body message.",
        "",
        f"Restaurant: {restaurant_name}",
        f"Customer's feedback: {customer_feedback or '(No specific feedback provided)'}",
    ]
    if reward:
        lines.append(f"Coupon being offered: {reward}")
    return "\n".join(lines)


def offer_line(title: Optional[str], reward: Optional[str]) -> Optional[str]:
    parts = [p for p in (title, reward) if p]
    return " - ".join(parts) or None


def compose_coupon_email(
    to: str,
    restaurant_name: str,
    coupon_code: str,
    sentiment_type: str,
    email_tone: str,
    text_client: Optional[TextGenerationClient] = None,
    review_url: Optional[str] = None,
    offer_title: Optional[str] = None,
    offer_reward: Optional[str] = None,
    customer_feedback: Optional[str] = None,
    liked_categories: Optional[Sequence[str]] = None,
) -> EmailMessage:
    use_ai = email_tone == "assist" and text_client is not None and text_client.is_configured
    offer = offer_line(offer_title, offer_reward)

    if sentiment_type == "positive":
        intro = None
        if use_ai:
            intro = text_client.generate_message(_positive_prompt(restaurant_name, liked_categories, offer_reward))
        intro = intro or generic_positive_message(restaurant_name, liked_categories)

        subject = f"{restaurant_name} - thanks for your review!"
        paragraphs = [
            intro,
            "\n".join(filter(None, [
                f"Offer: {offer}" if offer else None,
                f"Coupon code: {coupon_code}",
            ])),
            f"Leave us a public review: {review_url}" if review_url else None,
        ]
    else:
        intro = None
        if use_ai:
            intro = text_client.generate_message(_negative_prompt(restaurant_name, customer_feedback, offer_reward))
        intro = intro or generic_negative_message(restaurant_name, customer_feedback)

        subject = f"{restaurant_name} - we'd love to make it up to you"
        paragraphs = [
            intro,
            "\n".join(filter(None, [
                f"Here's a little something: {offer}" if offer else None,
                f"Your coupon code: {coupon_code}",
            ])),
        ]

    paragraphs.extend([
        "(Please show this email in-store to redeem.)",
        f"The {restaurant_name} team",
    ])

    return EmailMessage(to=to, subject=subject, text="\n\n".join(p for p in paragraphs if p))
