"""Conversation state to quick-reply button mapping.

The engine understands free text; buttons are shortcuts through the common
paths. Clicking a button sends its ``value`` exactly as if it had been typed.
"""

from chat_bridge.schemas.session_schema import QuickReply

STATE_QUICK_REPLIES: dict[str, tuple[tuple[str, str], ...]] = {
    # Existing customer greetings
    "address_confirm": (
        ("Yes, that's correct", "yes"),
        ("Different address", "no, different address"),
    ),
    "existing_appointment": (
        ("About my appointment", "yes, about my appointment"),
        ("Something new", "something new"),
    ),
    "appointment_action": (
        ("Reschedule", "reschedule"),
        ("Cancel", "cancel"),
        ("Something else", "something else"),
    ),
    # Issue discovery
    "issue_discovery": (
        ("🔧 Repair / Service", "I need a repair"),
        ("🔄 Maintenance / Tune-up", "I need maintenance"),
        ("💰 New Installation Estimate", "I want a new installation estimate"),
    ),
    "system_type": (
        ("🔥 Furnace / Heater", "furnace"),
        ("❄️ AC / Cooling", "air conditioner"),
        ("🚿 Water Heater", "water heater"),
        ("💧 Humidifier", "humidifier"),
    ),
    "system_age": (
        ("1-2 years", "2 years"),
        ("3-5 years", "4 years"),
        ("6-9 years", "7 years"),
        ("10+ years", "12 years"),
    ),
    "time_in_home": (
        ("Less than 2 years", "1 year"),
        ("3-5 years", "4 years"),
        ("6-10 years", "7 years"),
        ("10+ years", "12 years"),
    ),
    "installed_by_us": (
        ("Yes, you installed it", "yes"),
        ("No", "no"),
        ("Not sure", "I'm not sure"),
    ),
    "install_date": (
        ("Within the last year", "about 1 year ago"),
        ("1-2 years ago", "about 2 years ago"),
        ("Over 2 years ago", "over 2 years ago"),
        ("Not sure", "I'm not sure"),
    ),
    # Estimates
    "estimate_timeline": (
        ("ASAP", "as soon as possible"),
        ("Within 2 weeks", "within 2 weeks"),
        ("Within a month", "within a month"),
        ("Just exploring", "just exploring options"),
    ),
    "heat_pump_question": (
        ("Yes, tell me more!", "yes, I'm familiar"),
        ("Not really", "no, I'm not familiar"),
    ),
    "multi_estimate_check": (
        ("Yes, add another system", "yes"),
        ("No, just the one", "no"),
    ),
    "install_confirm": (
        ("Yes, from an existing estimate", "yes"),
        ("No, I need a new estimate", "no"),
    ),
    # Scheduling
    "time_preference": (
        ("As Soon As Possible", "as soon as possible"),
        ("This week", "this week"),
        ("Next week", "next week"),
    ),
    "urgent_schedule_preference": (
        ("Today if possible", "today"),
        ("As Soon As Possible", "as soon as possible"),
        ("Specific day", "a specific day"),
    ),
    "offer_slot": (
        ("✅ Yes, that works!", "yes"),
        ("❌ Different time", "no, a different time"),
    ),
    "additional_notes": (("No, that's everything", "no, that's all"),),
    "confirm_booking": (
        ("✅ Confirm Booking", "yes, confirm"),
        ("Change something", "no, I want to change something"),
    ),
    "reschedule_time": (
        ("As Soon As Possible", "as soon as possible"),
        ("This week", "this week"),
        ("Next week", "next week"),
    ),
    "reschedule_slot_offer": (
        ("✅ Yes, that works!", "yes"),
        ("❌ Different time", "no, a different time"),
    ),
    "cancel_confirm": (
        ("Yes, cancel it", "yes, cancel"),
        ("No, keep it", "no, keep it"),
    ),
    # Wrap-up
    "office_callback_offer": (
        ("Yes, have them call me", "yes"),
        ("No thanks, I'll call back", "no"),
    ),
    "final_questions": (
        ("Nope, all set!", "no, that's all"),
        ("Yes, one more thing", "yes"),
    ),
}

# States where the visitor has to type real data (name, address, phone...).
FREE_TEXT_STATES: frozenset[str] = frozenset(
    {
        "new_customer_name",
        "new_customer_address",
        "service_area_check",
        "collect_email",
        "customer_lookup_phone",
        "customer_lookup_email",
        "phone_collect",
    }
)


def is_free_text(state: str | None) -> bool:
    """True when only typed input makes sense for ``state``."""
    return state in FREE_TEXT_STATES


def resolve(state: str | None) -> list[QuickReply] | None:
    """Buttons for ``state``, or None when there are none.

    Free-text states never get buttons, even if a table entry exists.
    """
    if state is None or is_free_text(state):
        return None
    replies = STATE_QUICK_REPLIES.get(state)
    if replies is None:
        return None
    return [QuickReply(label=label, value=value) for label, value in replies]
