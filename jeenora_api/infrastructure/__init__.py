"""Infrastructure adapters: database, email, realtime and WhatsApp."""
