"""Backend for the Jeenora Hire portal: notifications and WhatsApp delivery."""
