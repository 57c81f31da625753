"""toolbot 命令行入口。"""
