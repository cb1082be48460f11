import yfinance as yf
import pandas as pd
from typing import Dict, Optional, List, Tuple
from datetime import datetime, timedelta
from decimal import Decimal
import logging
import time

from ..config import settings

logger = logging.getLogger(__name__)

# Stock type to yfinance suffix mapping
STOCK_TYPE_SUFFIX_MAP = {
    'japanese': '.T',  # Tokyo Stock Exchange
    'us': '',          # US exchanges don't need suffix
}


class PriceService:
    """
    Service for fetching live holding prices using yfinance.

    Only used when the user asks to refresh prices; every other read values
    holdings from the stored current_price (or cost basis).
    """

    # Cache for prices (symbol: {price, timestamp})
    _price_cache: Dict[str, Dict] = {}
    _cache_duration = timedelta(minutes=settings.price_cache_minutes)
    _last_request_time = None
    _min_request_interval = 2  # Seconds between requests

    @staticmethod
    def get_yfinance_symbol(symbol: str, stock_type: str) -> str:
        """
        Convert a symbol and stock type to the yfinance ticker format.

        Examples:
            ('7203', 'japanese') -> '7203.T'
            ('AAPL', 'us') -> 'AAPL'
            ('7203.T', 'japanese') -> '7203.T'
        """
        suffix = STOCK_TYPE_SUFFIX_MAP.get(stock_type, '')
        if suffix and symbol.endswith(suffix):
            return symbol
        return f"{symbol}{suffix}"

    @classmethod
    def _cached(cls, cache_key: str) -> Optional[Decimal]:
        cached = cls._price_cache.get(cache_key)
        if cached and datetime.now() - cached['timestamp'] < cls._cache_duration:
            return cached['price']
        return None

    @classmethod
    def _rate_limit_delay(cls):
        """Add delay between requests to avoid rate limiting"""
        if cls._last_request_time:
            elapsed = time.time() - cls._last_request_time
            if elapsed < cls._min_request_interval:
                time.sleep(cls._min_request_interval - elapsed)
        cls._last_request_time = time.time()

    @classmethod
    def get_current_price(cls, symbol: str, stock_type: str) -> Optional[Decimal]:
        """
        Get current price for a symbol.
        Returns None if price cannot be fetched.
        """
        cache_key = f"{symbol}:{stock_type}"
        cached = cls._cached(cache_key)
        if cached is not None:
            logger.info(f"Using cached price for {symbol}")
            return cached

        cls._rate_limit_delay()

        try:
            yf_symbol = cls.get_yfinance_symbol(symbol, stock_type)
            ticker = yf.Ticker(yf_symbol)

            price = None
            try:
                price = Decimal(str(ticker.fast_info['lastPrice']))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"fast_info unavailable for {yf_symbol}: {e}")

            if not price or price <= 0:
                info = ticker.info
                for field in ['currentPrice', 'regularMarketPrice', 'previousClose']:
                    if field in info and info[field]:
                        price = Decimal(str(info[field]))
                        break

            if price and price > 0:
                cls._price_cache[cache_key] = {
                    'price': price,
                    'timestamp': datetime.now()
                }
                logger.info(f"Fetched price for {symbol}: {price}")
                return price

            logger.warning(f"No price found for {symbol}")
            return None

        except Exception as e:
            # Check if it's a rate limit error
            if "429" in str(e) or "Too Many Requests" in str(e):
                logger.warning(f"Rate limited for {symbol}, will use cache or try later")
            else:
                logger.error(f"Error fetching price for {symbol}: {str(e)}")
            return None

    @classmethod
    def get_prices_bulk(cls, symbols: List[Tuple[str, str]]) -> Dict[Tuple[str, str], Optional[Decimal]]:
        """
        Get prices for multiple symbols using batch download.

        Args:
            symbols: List of (symbol, stock_type) tuples
        Returns:
            Dictionary mapping (symbol, stock_type) to price (None when unavailable)
        """
        results = {}
        symbols_to_fetch = []  # (symbol, stock_type, yf_symbol) needing API fetch

        for symbol, stock_type in symbols:
            cached = cls._cached(f"{symbol}:{stock_type}")
            if cached is not None:
                logger.debug(f"Using cached price for {symbol}")
                results[(symbol, stock_type)] = cached
                continue
            symbols_to_fetch.append((symbol, stock_type, cls.get_yfinance_symbol(symbol, stock_type)))

        if not symbols_to_fetch:
            logger.info("All prices served from cache")
            return results

        yf_symbols = [item[2] for item in symbols_to_fetch]
        logger.info(f"Batch fetching {len(yf_symbols)} symbols: {yf_symbols}")

        try:
            data = yf.download(
                yf_symbols,
                period='1d',
                progress=False,
                threads=True,
                ignore_tz=True,
                auto_adjust=True,
                group_by='column',
            )

            if data.empty:
                logger.warning("Batch download returned empty data")
                for symbol, stock_type, _ in symbols_to_fetch:
                    results[(symbol, stock_type)] = cls.get_current_price(symbol, stock_type)
                return results

            # yfinance returns MultiIndex columns (field, ticker)
            now = datetime.now()

            for symbol, stock_type, yf_symbol in symbols_to_fetch:
                if ('Close', yf_symbol) in data.columns:
                    close_data = data[('Close', yf_symbol)].dropna()
                    if not close_data.empty:
                        price_val = close_data.iloc[-1]
                        if pd.notna(price_val):
                            price = Decimal(str(float(price_val)))
                            cls._price_cache[f"{symbol}:{stock_type}"] = {'price': price, 'timestamp': now}
                            results[(symbol, stock_type)] = price
                            logger.info(f"Batch fetched {symbol}: {price}")
                            continue

                logger.warning(f"No data for {symbol} ({yf_symbol}) in batch response")
                results[(symbol, stock_type)] = None

        except Exception as e:
            logger.error(f"Batch download failed: {e}, falling back to individual fetch")
            for symbol, stock_type, _ in symbols_to_fetch:
                results[(symbol, stock_type)] = cls.get_current_price(symbol, stock_type)

        return results

    @classmethod
    def clear_cache(cls):
        cls._price_cache.clear()
