"""
Core 模組

服務組裝與生命週期管理。
"""
