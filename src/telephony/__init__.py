"""Call-control markup for the Twilio voice webhooks."""
