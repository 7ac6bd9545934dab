import random

farewell_banners = [
    "Successfully Unsubscribed",
    "You're off the list",
    "Unsubscribed. Sorry to see you go!",
    "Done. No more emails from us",
]

def get_random_farewell_banner() -> str:
    return random.choice(farewell_banners)

# Copy for the unsubscribe page, keyed by outcome
unsubscribe_pages = {
    "success": {
        "title": None,
        "message": "{email} has been removed from our newsletter.",
        "hint": "You will no longer receive emails from us.",
    },
    "invalid": {
        "title": "Invalid Link",
        "message": "This unsubscribe link is invalid or has expired.",
        "hint": "Please use the unsubscribe link from a recent email.",
    },
    "not_found": {
        "title": "Link No Longer Valid",
        "message": "This link is no longer valid.",
        "hint": None,
    },
    "error": {
        "title": "Unsubscribe Failed",
        "message": "Something went wrong, please try again later.",
        "hint": "If this keeps happening, reply to any of our emails.",
    },
}

def get_unsubscribe_page(outcome: str, email: str = "") -> dict:
    page = dict(unsubscribe_pages[outcome])
    page["title"] = page["title"] or get_random_farewell_banner()
    page["message"] = page["message"].format(email=email or "Your address")
    return page
