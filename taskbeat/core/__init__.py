"""核心模块：运行时配置、日志、错误"""
