"""Users domain - identity lookups and last-seen bookkeeping used by realtime"""
