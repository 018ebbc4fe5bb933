"""
商品カタログAIバックエンド
"""
__version__ = "0.1.0"
