

# 机器人消息文本


PRIVATE_GREETING = "您好！我是飞书机器人，有什么可以帮助您的吗？"

GROUP_GREETING = "您好！我在群里为大家服务，有什么需要帮助的吗？"

HELP_TEXT = (
    "**help** - 显示此帮助信息\n"
    "**myuid** - 查看你的用户ID\n"
    "**groupid** - 查看当前群组ID"
)


def bot_add_msg_to_group(event):
    """
    生成机器人进群打招呼消息

    Args:
        event: 群成员事件（GroupMemberEvent）

    Returns:
        str: 打招呼消息内容
    """
    group_id = event.chat_id or "未知"
    group_name = event.name or "本群"

    content = (
        f"👋 大家好！我是飞书机器人，很高兴加入「{group_name}」群组\n\n"
        f"🤖 我的功能说明：\n"
        f"• 发送 help 查看可用命令\n"
        f"• 群聊中@我即可与我对话\n\n"
        f"🆔 Group ID: {group_id}"
    )
    return content

# 用户进群打招呼消息格式化函数
def user_add_msg_to_group(event):
    """
    生成用户进群打招呼消息

    Args:
        event: 群成员事件（GroupMemberEvent）

    Returns:
        str: 打招呼消息内容
    """
    group_id = event.chat_id or "未知"
    group_name = event.name or "本群"
    content = (
        f"👋 Hi！欢迎加入「{group_name}」群组！\n\n"
        f"🆔 Group ID: {group_id}"
    )
    return content
