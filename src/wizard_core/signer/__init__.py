"""External signer integration."""
