"""Генератор PDF-каталога товаров Shopify."""

__version__ = "0.1.0"
