"""HashiCorp Vault integration."""
