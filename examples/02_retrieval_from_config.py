"""
02_retrieval_from_config.py - Build a chain from YAML and answer from added context

memchain.yaml:
    llm:
      provider: openai
      model: gpt-4o-mini
      api_key: ${OPENAI_API_KEY}
    streaming:
      delay: 0.02
    retrieval:
      embedding_model: text-embedding-3-small
"""

import asyncio

from memchain import MemoryChain


async def main():
    async with MemoryChain.from_config("memchain.yaml") as chain:
        await chain.add_context([
            "The office wifi password is rotated every Monday.",
            {"team": "platform", "on_call": "Sam", "week": 42},
        ])

        print("User: Who is on call for platform?")
        stream = chain.stream("support-1", "Who is on call for platform?")
        print(f"Assistant: {await stream.collect()}")


if __name__ == "__main__":
    asyncio.run(main())
