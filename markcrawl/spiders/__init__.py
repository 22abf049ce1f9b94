"""Scrapy spiders driving the markcrawl extraction pipeline."""
