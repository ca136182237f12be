"""
Schemas 模組

事件與配置的資料結構定義。
"""
