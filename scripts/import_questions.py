"""
题目导入脚本
将题目JSON文件导入题库，供马拉松刷题按知识点抽取

JSON 格式（对象或数组）：
    {"id": "...", "topic_id": "...", "content": "...", "options": [...],
     "correct_answer_index": 0, "explanation": "...", "difficulty": 2}
"""
import sys
import json
import os
from pathlib import Path

# 添加项目路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / ".." / "src" / "backend"))

# Change to backend directory so relative paths work
os.chdir(project_root / ".." / "src" / "backend")

# 默认 SQLite 数据库位于 data/ 下
Path("data").mkdir(exist_ok=True)

from app.core.database import SessionLocal
from app.models import Base, init_db
from app.services.question_pool import QuestionPool


def load_questions(json_file: str) -> list:
    """读取JSON文件，支持单个题目或题目列表"""
    with open(json_file, 'r', encoding='utf-8') as f:
        questions_data = json.load(f)

    if isinstance(questions_data, dict):
        return [questions_data]
    if isinstance(questions_data, list):
        return questions_data
    raise ValueError("JSON格式错误：期望对象或数组")


def main():
    """主函数"""
    import argparse

    parser = argparse.ArgumentParser(description='导入题目到题库')
    parser.add_argument('--json-file', '-f', help='JSON文件路径（多个文件用逗号分隔）')
    parser.add_argument('--update', '-u', action='store_true', help='已存在的题目（按 id）更新内容')
    parser.add_argument('--init-db', '-i', action='store_true', help='初始化数据库表')

    args = parser.parse_args()
    if not args.json_file and not args.init_db:
        parser.error("需要指定 --json-file 或 --init-db")

    if args.init_db:
        print("初始化数据库...")
        init_db()
        print(f"  已创建数据表: {', '.join(sorted(Base.metadata.tables))}")

    if not args.json_file:
        return

    db = SessionLocal()

    try:
        pool = QuestionPool(db)
        json_files = [f.strip() for f in args.json_file.split(',') if f.strip()]

        total = {"imported": 0, "updated": 0, "skipped": 0, "errors": []}
        for json_file in json_files:
            print(f"\n从 {json_file} 导入题目...")
            result = pool.import_questions(load_questions(json_file), update_existing=args.update)
            for key in ("imported", "updated", "skipped"):
                total[key] += result[key]
            total["errors"].extend(result["errors"])

        print("\n导入完成！")
        print(f"  成功导入: {total['imported']}")
        print(f"  更新: {total['updated']}")
        print(f"  跳过: {total['skipped']}")

        if total["errors"]:
            print("\n错误详情（前10个）:")
            for error in total["errors"][:10]:
                print(f"  - {error}")

    except Exception as e:
        print(f"\n错误: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
