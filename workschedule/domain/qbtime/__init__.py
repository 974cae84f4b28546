"""QuickBooks Time (TSheets) integration - directory sync and schedule event export"""
