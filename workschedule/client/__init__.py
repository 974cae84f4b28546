"""Client-side session: local cache, API client and the debounced workspace"""
