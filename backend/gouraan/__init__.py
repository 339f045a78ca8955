"""
GoUraan 旅行预订平台后端
机票、酒店、朝觐/副朝套餐
"""
__version__ = "1.0.0"
