from __future__ import annotations

from typing import Any

from .models import now_ms

# Local cache keys
LEADS_KEY = "dthstore_leads_v2"
PRODUCTS_KEY = "dthstore_products_v1"
SITE_CONFIG_KEY = "dthstore_site_config_v1"
NOTIFICATION_CONFIG_KEY = "dthstore_notification_config_v1"
DESKTOP_FEED_KEY = "dthstore_desktop_feed_v1"


def initial_leads() -> list[dict[str, Any]]:
    """Seed list shown when nothing has ever been cached."""
    now = now_ms()
    return [
        {
            "id": "lead-1",
            "name": "Rahul Sharma",
            "mobile": "9876543210",
            "location": "Mumbai",
            "serviceType": "DTH Connection",
            "operator": "Tata Play",
            "status": "New",
            "source": "Website",
            "createdAt": now - 10_000_000,
        },
        {
            "id": "lead-2",
            "name": "Priya Verma",
            "mobile": "9988776655",
            "location": "Delhi",
            "serviceType": "WiFi / Broadband",
            "operator": "Jio Fiber",
            "status": "Contacted",
            "source": "WhatsApp",
            "createdAt": now - 5_000_000,
        },
        {
            "id": "lead-3",
            "name": "Amit Kumar",
            "mobile": "8877665544",
            "location": "Bangalore",
            "serviceType": "WiFi / Broadband",
            "operator": "Airtel Xstream",
            "status": "Installed",
            "source": "Website",
            "createdAt": now - 20_000_000,
            "orderId": "ORD-2024-001",
        },
    ]


PRODUCTS: list[dict[str, Any]] = [
    {
        "id": "p1",
        "title": "Tata Play HD Set Top Box",
        "price": "₹1,499",
        "originalPrice": "₹2,199",
        "type": "DTH",
        "features": ["1 Month Free Subscription", "Free Installation", "HD Channels"],
        "image": "https://images.unsplash.com/photo-1593784991095-a205069470b6?w=800",
        "color": "border-purple-500",
        "isBestSeller": True,
    },
    {
        "id": "p2",
        "title": "Airtel Digital TV HD",
        "price": "₹1,299",
        "originalPrice": "₹1,999",
        "type": "DTH",
        "features": ["Free Installation", "Premium Sports Pack", "Recording Feature"],
        "image": "https://images.unsplash.com/photo-1522869635100-9f4c5e86aa37?w=800",
        "color": "border-red-500",
    },
    {
        "id": "p3",
        "title": "Jio Fiber 100 Mbps",
        "price": "₹699/mo",
        "originalPrice": "₹999/mo",
        "type": "Broadband",
        "features": ["Unlimited Data", "Free Router", "OTT Apps Included"],
        "image": "https://images.unsplash.com/photo-1544197150-b99a580bb7a8?w=800",
        "color": "border-blue-500",
        "isBestSeller": True,
    },
]

DEFAULT_SITE_CONFIG: dict[str, Any] = {
    "logoText": "DTH Store",
    "logoColorClass": "text-blue-700",
    "navLinks": [
        {"id": "nav-home", "label": "Home", "target": "home"},
        {"id": "nav-dth", "label": "DTH", "target": "dth"},
        {"id": "nav-broadband", "label": "Broadband", "target": "broadband"},
        {"id": "nav-offer", "label": "Special Offer", "target": "special-offer", "isSpecial": True},
    ],
    "heroSlides": [
        {
            "id": "slide-1",
            "image": "https://images.unsplash.com/photo-1593784991095-a205069470b6?w=1600",
            "title": "New DTH Connection",
            "subtitle": "Free installation on all HD set top boxes",
            "cta": "Book Now",
        },
        {
            "id": "slide-2",
            "image": "https://images.unsplash.com/photo-1544197150-b99a580bb7a8?w=1600",
            "title": "High Speed Broadband",
            "subtitle": "Plans from ₹499 with free router",
            "cta": "Check Plans",
        },
    ],
    "specialOfferImages": {
        "heroBackground": "https://images.unsplash.com/photo-1522869635100-9f4c5e86aa37?w=1600",
        "sideImage": "https://images.unsplash.com/photo-1593784991095-a205069470b6?w=800",
    },
}
