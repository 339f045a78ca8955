"""
GoUraan 核心层 - 与具体业务无关的基础抽象
事件总线、通知渠道、角色权限表
"""
