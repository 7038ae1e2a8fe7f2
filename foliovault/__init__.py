"""FolioVault exchange gateway."""
